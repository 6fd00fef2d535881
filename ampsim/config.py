# ampsim/config.py
"""
Engine configuration.

Size limits live here and are handed to the engine explicitly instead of being
module-level globals.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from .errors import ConfigurationError

BACKENDS = ("serial", "numba", "cupy")

_DTYPES = {
    "complex64": np.complex64,
    "complex128": np.complex128,
}


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for the simulation engine."""

    # Execution backend: "serial", "numba" or "cupy"
    backend: str = "serial"
    dtype: type = np.complex64

    # Widest register the engine accepts
    max_qubits: int = 16
    # Largest amplitude buffer (in elements) the backend can address
    max_buffer_size: int = 1 << 24

    # Numba worker threads; None keeps numba's default pool
    num_threads: Optional[int] = None
    # Spare arrays kept per (size, dtype) by the buffer pool
    pool_size: int = 2

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"unknown backend {self.backend!r}, expected one of {BACKENDS}")
        if np.dtype(self.dtype) not in (np.dtype(np.complex64), np.dtype(np.complex128)):
            raise ConfigurationError(f"dtype must be complex64 or complex128, got {np.dtype(self.dtype)}")
        if self.max_qubits < 1:
            raise ConfigurationError(f"max_qubits must be >= 1, got {self.max_qubits}")
        if self.max_buffer_size < 1:
            raise ConfigurationError(f"max_buffer_size must be >= 1, got {self.max_buffer_size}")
        if self.num_threads is not None and self.num_threads < 1:
            raise ConfigurationError(f"num_threads must be >= 1, got {self.num_threads}")
        if self.pool_size < 0:
            raise ConfigurationError(f"pool_size must be >= 0, got {self.pool_size}")

    def with_(self, **changes) -> "EngineConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ=None) -> "EngineConfig":
        """Build a config from ``AMPSIM_*`` environment variables."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if "AMPSIM_BACKEND" in env:
            kwargs["backend"] = env["AMPSIM_BACKEND"].strip().lower()
        if "AMPSIM_DTYPE" in env:
            name = env["AMPSIM_DTYPE"].strip().lower()
            if name not in _DTYPES:
                raise ConfigurationError(f"AMPSIM_DTYPE must be one of {sorted(_DTYPES)}, got {name!r}")
            kwargs["dtype"] = _DTYPES[name]
        for var, key in (("AMPSIM_MAX_QUBITS", "max_qubits"),
                         ("AMPSIM_MAX_BUFFER_SIZE", "max_buffer_size"),
                         ("AMPSIM_NUM_THREADS", "num_threads"),
                         ("AMPSIM_POOL_SIZE", "pool_size")):
            if var in env:
                try:
                    kwargs[key] = int(env[var])
                except ValueError:
                    raise ConfigurationError(f"{var} must be an integer, got {env[var]!r}") from None
        return cls(**kwargs)


# Default configuration instance
DEFAULT_CONFIG = EngineConfig()
