# ampsim/bench.py
"""
Benchmarks → data/<backend>/*.csv

    python -m ampsim.bench kernels --ns 10,14,18 --backend numba
    python -m ampsim.bench qubits  --ns 8,10,12  --layers 20
    python -m ampsim.bench threads --n 18 --threads 1,2,4,8
"""
import argparse
import csv
import logging
import os
import platform
import subprocess
import time
from datetime import datetime

import numpy as np

from . import gates as G
from .circuit import Circuit
from .config import EngineConfig
from .controls import Controls
from .engine import Engine, load_backend
from .state import AmplitudeBuffer

log = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

FIELDS = ["bench", "backend", "kernel", "qubits", "layers", "threads", "steps",
          "wall_ms", "host", "revision", "started"]

# ---------------------------------------------------------------------
# csv output

def _revision():
    try:
        out = subprocess.run(["git", "describe", "--always", "--dirty"],
                             capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return ""
    return out.stdout.strip()

class Results:
    """Append-only CSV sink for one benchmark file."""

    def __init__(self, path):
        self.path = path
        self.meta = {"host": platform.node(), "revision": _revision(),
                     "started": datetime.now().isoformat(timespec="seconds")}
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", newline="") as f:
            csv.DictWriter(f, fieldnames=FIELDS).writeheader()

    def add(self, **row):
        row.update(self.meta)
        row["wall_ms"] = f"{row['wall_ms']:.3f}"
        with open(self.path, "a", newline="") as f:
            csv.DictWriter(f, fieldnames=FIELDS, restval="").writerow(row)
        log.info("%s", row)

def output_path(backend, name, data_dir=None):
    return os.path.join(data_dir or DATA_DIR, backend, f"{name}.csv")

# ---------------------------------------------------------------------
# workloads

def layered_circuit(n, layers, seed=0):
    """Layers cycling through every gate kind the engine runs."""
    rng = np.random.default_rng(seed)
    c = Circuit.empty(n)
    half = max(1, n // 2)
    for layer in range(layers):
        kind = layer % 4
        if kind == 0:
            for k in range(n):
                c.ry(k, float(rng.uniform(0, np.pi)))
        elif kind == 1:
            for k in range(layer % 2, n - 1, 2):
                c.cz(k, k + 1)
        elif kind == 2:
            under = Controls.bit(n - 1, True) if n > half else Controls.NONE
            c.increment(0, half, int(rng.integers(-3, 4)), controls=under)
            c.universal_not(n - 1)
        else:
            c.fourier_step(0, int(rng.integers(0, n)))
    return c

# one call per kernel on an n-qubit buffer; the span covers the low half
KERNELS = {
    "control_mask": lambda be, st, m: be.control_mask(Controls.bit(st.n - 1, True), st.n),
    "qubit_operation": lambda be, st, m: be.qubit_operation(st, G.H(st.dtype), 0, m),
    "universal_not": lambda be, st, m: be.universal_not(st, m, 0),
    "increment": lambda be, st, m: be.increment(st, m, 0, max(1, st.n // 2), 3),
    "fourier_step": lambda be, st, m: be.fourier_step(st, m, 0, st.n // 2),
}

def _sync(backend):
    # GPU kernels return before they finish
    if backend.__name__.endswith("apply_cupy"):
        import cupy
        cupy.cuda.Device().synchronize()

def time_kernel(backend, fn, state, mask, repeat):
    fn(backend, state, mask)  # JIT / first launch
    _sync(backend)
    t0 = time.perf_counter()
    for _ in range(repeat):
        fn(backend, state, mask)
    _sync(backend)
    return (time.perf_counter() - t0) * 1e3 / repeat

def time_circuit(engine, circ):
    t0 = time.perf_counter()
    engine.run(circ)
    return (time.perf_counter() - t0) * 1e3

def engine_for(backend, n, threads=None):
    cfg = EngineConfig(backend=backend, num_threads=threads)
    if n > cfg.max_qubits:
        cfg = cfg.with_(max_qubits=n, max_buffer_size=max(cfg.max_buffer_size, 1 << n))
    return Engine(cfg)

def numba_pool_size():
    try:
        from numba import config
    except ImportError:
        return 1
    return int(config.NUMBA_NUM_THREADS)

# ---------------------------------------------------------------------
# experiments

def bench_kernels(ns, backend_name, repeat, out_path):
    print(f"[kernels] {backend_name} → {out_path}")
    backend = load_backend(backend_name)
    res = Results(out_path)
    for n in ns:
        st = AmplitudeBuffer.impulse(n, 0)
        if hasattr(backend, "to_device"):
            st = backend.to_device(st)
        mask = backend.control_mask(Controls.NONE, n)
        for name, fn in KERNELS.items():
            wall = time_kernel(backend, fn, st, mask, repeat)
            res.add(bench="kernels", backend=backend_name, kernel=name, qubits=n, steps=repeat, wall_ms=wall)
            print(f"  n={n:<3d} {name:<16s} {wall:9.3f} ms")

def bench_qubits(ns, layers, backend, out_path):
    print(f"[qubits] {backend} → {out_path}")
    res = Results(out_path)
    for i, n in enumerate(ns):
        circ = layered_circuit(n, layers, seed=42)
        engine = engine_for(backend, n)
        if i == 0:
            engine.run(circ)  # compile before the first timed run
        wall = time_circuit(engine, circ)
        res.add(bench="qubits", backend=backend, qubits=n, layers=layers,
                steps=circ.gate_count(), wall_ms=wall)
        print(f"  n={n:<3d} {wall:9.2f} ms")

def bench_threads(n, layers, threads, out_path):
    print(f"[threads] numba → {out_path}")
    res = Results(out_path)
    circ = layered_circuit(n, layers, seed=123)
    cap = numba_pool_size()
    base = None
    for t in threads:
        if t > cap:
            log.warning("%d threads requested, numba pool has %d", t, cap)
            t = cap
        engine = engine_for("numba", n, threads=t)
        engine.run(circ)
        wall = time_circuit(engine, circ)
        base = base or wall
        res.add(bench="threads", backend="numba", qubits=n, layers=layers, threads=t,
                steps=circ.gate_count(), wall_ms=wall)
        print(f"  t={t:<3d} {wall:9.2f} ms  x{base / wall:.2f}")

# ---------------------------------------------------------------------

def _ints(text):
    return [int(x) for x in text.split(",") if x.strip()]

def main(argv=None):
    p = argparse.ArgumentParser(prog="ampsim.bench", description="ampsim benchmarks")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--data-dir", default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    k = sub.add_parser("kernels", help="time each kernel once per qubit count")
    k.add_argument("--ns", type=_ints, default=[10, 14, 18])
    k.add_argument("--repeat", type=int, default=10)
    k.add_argument("--backend", default="numba", choices=["serial", "numba", "cupy"])

    q = sub.add_parser("qubits", help="layered circuit runtime vs qubit count")
    q.add_argument("--ns", type=_ints, default=[8, 10, 12])
    q.add_argument("--layers", type=int, default=20)
    q.add_argument("--backend", default="numba", choices=["serial", "numba", "cupy"])

    t = sub.add_parser("threads", help="numba runtime vs worker threads")
    t.add_argument("--n", type=int, default=18)
    t.add_argument("--layers", type=int, default=40)
    t.add_argument("--threads", type=_ints, default=[1, 2, 4, 8])

    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if args.cmd == "kernels":
        bench_kernels(args.ns, args.backend, args.repeat,
                      output_path(args.backend, "kernels", args.data_dir))
    elif args.cmd == "qubits":
        bench_qubits(args.ns, args.layers, args.backend,
                     output_path(args.backend, "qubits", args.data_dir))
    else:
        bench_threads(args.n, args.layers, args.threads,
                      output_path("numba", "threads", args.data_dir))

if __name__ == "__main__":
    main()
