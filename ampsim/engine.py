# ampsim/engine.py
"""Drives a circuit through a kernel backend, one ping-pong step per gate.

For every gate of every column the engine builds the control mask, runs the
gate's kernel on the current buffer and swaps. Steps are strictly sequential:
a kernel only starts once the previous buffer is complete. Everything that can
be checked up front (qubit count, buffer size, targets, operator shapes,
controls) is checked before the first kernel runs.
"""
from __future__ import annotations

import importlib
import logging
from typing import Iterator, List, NamedTuple, Optional

import numpy as np

from .circuit import Circuit
from .config import DEFAULT_CONFIG, EngineConfig
from .errors import AmpsimError, BackendUnavailableError, ConfigurationError
from .pool import BufferPool
from .state import AmplitudeBuffer

log = logging.getLogger(__name__)

_BACKEND_MODULES = {
    "serial": ("ampsim.apply_serial", None),
    "numba": ("ampsim.apply_numba", "Numba backend not available. Did you `pip install numba`?"),
    "cupy": ("ampsim.apply_cupy", "CuPy backend not available. Did you `pip install cupy`?"),
}


def load_backend(name: str):
    """Import the kernel module for a backend name."""
    if name not in _BACKEND_MODULES:
        raise ConfigurationError(f"unknown backend {name!r}")
    module, hint = _BACKEND_MODULES[name]
    try:
        return importlib.import_module(module)
    except ImportError as e:
        raise BackendUnavailableError(hint or str(e)) from e


class Step(NamedTuple):
    column: int
    gate: int
    state: AmplitudeBuffer


class Engine:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.backend = load_backend(self.config.backend)
        if self.config.num_threads is not None and hasattr(self.backend, "set_threads"):
            self.backend.set_threads(self.config.num_threads)
        self.pool = BufferPool(self.backend.empty, self.config.pool_size)

    # -----------------------------------------------------------------

    def _prepare(self, circuit: Circuit, initial: Optional[AmplitudeBuffer]) -> AmplitudeBuffer:
        try:
            circuit.validate(self.config)
            if initial is not None and initial.n != circuit.n:
                raise ConfigurationError(
                    f"initial state has {initial.n} qubits, circuit has {circuit.n}")
        except AmpsimError as e:
            log.warning("rejected circuit: %s", e)
            raise

        dtype = np.dtype(self.config.dtype)
        if initial is None:
            initial = AmplitudeBuffer.zero(circuit.n, dtype=dtype)
        elif initial.dtype != dtype:
            initial = AmplitudeBuffer(initial.n, initial.psi.astype(dtype))
        to_device = getattr(self.backend, "to_device", None)
        return to_device(initial) if to_device else initial

    def _evaluate(self, circuit: Circuit, state: AmplitudeBuffer, recycle: bool) -> Iterator[Step]:
        n, N, dtype = circuit.n, 1 << circuit.n, state.dtype
        first = state
        for c, g, op, controls in circuit.schedule():
            mask = self.backend.control_mask(controls, n, out=self.pool.acquire(N, np.bool_))
            nxt = op.apply(self.backend, state, mask, out=self.pool.acquire(N, dtype))
            self.pool.release(mask.bits)
            log.debug("column %d gate %d: %s under %s", c, g, type(op).__name__, controls)
            if recycle and state is not first:
                self.pool.release(state.psi)
            state = nxt
            yield Step(c, g, state)

    # -----------------------------------------------------------------

    def run(self, circuit: Circuit, initial: Optional[AmplitudeBuffer] = None) -> AmplitudeBuffer:
        """Evaluate the whole circuit and return the final buffer (on the host)."""
        state = self._prepare(circuit, initial)
        log.info("running %d-qubit circuit: %d columns, %d gates on %s backend",
                 circuit.n, len(circuit.columns), circuit.gate_count(), self.config.backend)
        for step in self._evaluate(circuit, state, recycle=True):
            state = step.state
        to_host = getattr(self.backend, "to_host", None)
        return to_host(state) if to_host else state

    def steps(self, circuit: Circuit, initial: Optional[AmplitudeBuffer] = None) -> Iterator[Step]:
        """
        Validate, then lazily evaluate: one ``Step`` per kernel invocation.

        Yielded buffers belong to the caller and are never recycled. Closing the
        iterator abandons the evaluation between two steps.
        """
        state = self._prepare(circuit, initial)
        return self._evaluate(circuit, state, recycle=False)

    def column_states(self, circuit: Circuit, initial: Optional[AmplitudeBuffer] = None) -> List[AmplitudeBuffer]:
        """Buffer after each column, e.g. for per-column display."""
        state = self._prepare(circuit, initial)
        it = self._evaluate(circuit, state, recycle=False)
        out = []
        for col in circuit.columns:
            # a column without gates leaves the buffer as it was
            for _ in col.ops:
                state = next(it).state
            out.append(state)
        return out
