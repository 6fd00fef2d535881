# ampsim/errors.py
"""Exception types raised before any kernel runs.

NaN/Inf coming out of a degenerate operator are not errors: they stay in the
buffer as data and it is up to the display side to notice them
(see ``AmplitudeBuffer.has_non_finite``).
"""
from __future__ import annotations

from typing import Optional


class AmpsimError(Exception):
    """Base class for every error raised by ampsim."""


class ConfigurationError(AmpsimError, ValueError):
    """Bad qubit count, target bit, span, operator shape or controls.

    ``column`` / ``gate`` locate the offending entry of a circuit when the
    error comes out of circuit validation.
    """

    def __init__(self, message: str, column: Optional[int] = None, gate: Optional[int] = None):
        self.reason = message
        self.column = column
        self.gate = gate
        if column is not None:
            where = f"column {column}" if gate is None else f"column {column}, gate {gate}"
            message = f"{where}: {message}"
        super().__init__(message)


class ResourceError(AmpsimError, MemoryError):
    """Requested index space does not fit the execution backend."""


class BackendUnavailableError(ResourceError):
    """The optional library behind a backend (numba, cupy) is not installed."""
