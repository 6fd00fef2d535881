# ampsim/plot_results.py
"""Turn the CSVs written by ``ampsim.bench`` into PNG plots next to them."""
import csv
import logging
import os
from collections import defaultdict
from statistics import median

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .bench import DATA_DIR

log = logging.getLogger(__name__)

INT_FIELDS = ("qubits", "layers", "threads", "steps")

def load_rows(path):
    with open(path, newline="") as f:
        rows = list(csv.DictReader(f))
    for r in rows:
        for k in INT_FIELDS:
            r[k] = int(r[k]) if r.get(k) else 0
        r["wall_ms"] = float(r["wall_ms"])
    return rows

def medians(rows, *keys):
    """{key tuple: median wall_ms} over repeated rows."""
    groups = defaultdict(list)
    for r in rows:
        groups[tuple(r[k] for k in keys)].append(r["wall_ms"])
    return {k: float(median(v)) for k, v in groups.items()}

def _save(series, path, xlabel, ylabel, title, logy=False):
    """series: {label: [(x, y), ...]}; nothing is written for an empty series."""
    if not series:
        return None
    fig, ax = plt.subplots()
    for label in sorted(series):
        xs, ys = zip(*sorted(series[label]))
        ax.plot(xs, ys, marker="o", label=label)
    ax.set(xlabel=xlabel, ylabel=ylabel, title=title)
    if logy:
        ax.set_yscale("log")
    ax.grid(True, which="both", ls="--", lw=0.5)
    ax.legend()
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    log.info("wrote %s", path)
    return path

def plot_kernels(rows, out_dir, backend):
    series = defaultdict(list)
    for (kernel, n), ms in medians(rows, "kernel", "qubits").items():
        series[kernel].append((n, ms))
    return _save(series, os.path.join(out_dir, f"kernels_{backend}.png"),
                 "Qubits (n)", "ms per call", f"Kernel runtime [{backend}]", logy=True)

def plot_qubits(rows, out_dir, backend):
    series = defaultdict(list)
    for (layers, n), ms in medians(rows, "layers", "qubits").items():
        series[f"{layers} layers"].append((n, ms))
    return _save(series, os.path.join(out_dir, f"qubits_{backend}.png"),
                 "Qubits (n)", "Runtime (ms)", f"Circuit runtime [{backend}]", logy=True)

def plot_threads(rows, out_dir, backend):
    by_t = medians(rows, "threads")
    base = by_t.get((1,))
    if not base:
        return None
    series = {"speedup": [(t, base / ms) for (t,), ms in by_t.items()]}
    return _save(series, os.path.join(out_dir, f"threads_{backend}.png"),
                 "Threads", "Speedup (T1/Tt)", f"Thread scaling [{backend}]")

def plot_backends(data_dir):
    """Circuit runtime of every backend that has a qubits.csv, on one axis."""
    series = {}
    for backend in sorted(os.listdir(data_dir)):
        path = os.path.join(data_dir, backend, "qubits.csv")
        if os.path.exists(path):
            series[backend] = [(n, ms) for (n,), ms in medians(load_rows(path), "qubits").items()]
    return _save(series, os.path.join(data_dir, "qubits_backends.png"),
                 "Qubits (n)", "Runtime (ms)", "Backends compared", logy=True)

PLOTTERS = {"kernels": plot_kernels, "qubits": plot_qubits, "threads": plot_threads}

def main(data_dir=DATA_DIR):
    written = []
    for root, _, files in os.walk(data_dir):
        for name in sorted(files):
            stem, ext = os.path.splitext(name)
            if ext != ".csv" or stem not in PLOTTERS:
                continue
            backend = os.path.basename(root)
            rows = load_rows(os.path.join(root, name))
            print(f"plotting {backend}/{name} ({len(rows)} rows)")
            written.append(PLOTTERS[stem](rows, root, backend))
    if os.path.isdir(data_dir):
        written.append(plot_backends(data_dir))
    written = [p for p in written if p]
    if not written:
        print(f"no benchmark CSVs under {data_dir}")
    return written


if __name__ == "__main__":
    main()
