# ampsim/state.py
import numpy as np
from dataclasses import dataclass

from .errors import ConfigurationError


def _host(arr) -> np.ndarray:
    """Return a NumPy view/copy of a host or device (CuPy) array."""
    if isinstance(arr, np.ndarray):
        return arr
    return arr.get()


def _owned(arr):
    """Freeze a host array the buffer now owns; views are copied first so no
    writable base can change the buffer afterwards."""
    if isinstance(arr, np.ndarray):
        if arr.base is not None:
            arr = arr.copy()
        arr.flags.writeable = False
    return arr


def qubit_count(size: int) -> int:
    """log2(size) for power-of-two sizes, ConfigurationError otherwise."""
    if size < 1 or size & (size - 1):
        raise ConfigurationError(f"buffer size must be a power of two, got {size}")
    return size.bit_length() - 1


def check_field(n: int, target: int, width: int, what: str = "target"):
    """Bit field [target, target+width) must fit inside an n-qubit index."""
    if width < 0:
        raise ConfigurationError(f"{what} width must be >= 0, got {width}")
    if target < 0 or target + width > n:
        raise ConfigurationError(
            f"{what} bits [{target}, {target + width}) out of range for {n} qubits")


def check_operands(state, control, out=None):
    """A kernel's state, mask and output array must all cover the same index space."""
    if control.n != state.n:
        raise ConfigurationError(f"control mask covers {control.n} qubits, state has {state.n}")
    if out is not None and (out.shape != state.psi.shape or out.dtype != state.psi.dtype):
        raise ConfigurationError(
            f"output array {out.shape}/{out.dtype} does not match state {state.psi.shape}/{state.psi.dtype}")
    if out is not None and out is state.psi:
        raise ConfigurationError("kernels never write into their own input buffer")


@dataclass(frozen=True)
class AmplitudeBuffer:
    """Complex amplitudes of an n-qubit register, one per basis index.

    Bit q of an index is qubit q (little-endian). Produced once by a kernel
    and read-only afterwards. The buffer takes ownership of a host array passed
    in: the array is flagged non-writeable (a view is copied first). Use
    ``from_amplitudes`` to leave the caller's array alone.
    """
    n: int
    psi: np.ndarray  # shape (2**n,), dtype complex64/128

    def __post_init__(self):
        if self.psi.ndim != 1:
            raise ConfigurationError(f"amplitudes must be 1-D, got shape {self.psi.shape}")
        if self.psi.shape[0] != 1 << self.n:
            raise ConfigurationError(f"{self.n} qubits need {1 << self.n} amplitudes, got {self.psi.shape[0]}")
        object.__setattr__(self, "psi", _owned(self.psi))

    @staticmethod
    def zero(n: int, dtype=np.complex64) -> "AmplitudeBuffer":
        return AmplitudeBuffer.impulse(n, 0, dtype=dtype)

    @staticmethod
    def impulse(n: int, index: int = 0, dtype=np.complex64) -> "AmplitudeBuffer":
        N = 1 << n
        if not 0 <= index < N:
            raise ConfigurationError(f"basis index {index} out of range for {n} qubits")
        psi = np.zeros(N, dtype=dtype)
        psi[index] = 1.0 + 0.0j
        return AmplitudeBuffer(n=n, psi=psi)

    @staticmethod
    def from_amplitudes(values, dtype=np.complex64) -> "AmplitudeBuffer":
        psi = np.array(np.asarray(values).reshape(-1), dtype=dtype)
        return AmplitudeBuffer(n=qubit_count(psi.shape[0]), psi=psi)

    @staticmethod
    def from_pairs(pairs, dtype=np.complex64) -> "AmplitudeBuffer":
        """Build from a flat [re0, im0, re1, im1, ...] sequence."""
        flat = np.asarray(pairs, dtype=np.float64).reshape(-1)
        if flat.shape[0] % 2:
            raise ConfigurationError(f"expected (real, imag) pairs, got {flat.shape[0]} floats")
        psi = (flat[0::2] + 1j * flat[1::2]).astype(dtype)
        return AmplitudeBuffer(n=qubit_count(psi.shape[0]), psi=psi)

    @property
    def dtype(self):
        return self.psi.dtype

    @property
    def size(self) -> int:
        return self.psi.shape[0]

    def as_numpy(self) -> np.ndarray:
        return _host(self.psi)

    def to_pairs(self) -> np.ndarray:
        """Flat (real, imag) pairs in index order, for display collaborators."""
        psi = self.as_numpy()
        out = np.empty(2 * psi.shape[0], dtype=psi.real.dtype)
        out[0::2] = psi.real
        out[1::2] = psi.imag
        return out

    def norm2(self) -> float:
        psi = self.as_numpy()
        return float(np.vdot(psi, psi).real)

    def has_non_finite(self) -> bool:
        return not bool(np.isfinite(self.as_numpy()).all())

    def copy(self) -> "AmplitudeBuffer":
        return AmplitudeBuffer(self.n, self.psi.copy())


@dataclass(frozen=True)
class ControlMask:
    """One boolean per basis index: does the current gate apply there."""
    n: int
    bits: np.ndarray  # shape (2**n,), dtype bool

    def __post_init__(self):
        if self.bits.shape != (1 << self.n,):
            raise ConfigurationError(f"{self.n} qubits need {1 << self.n} mask cells, got {self.bits.shape}")
        object.__setattr__(self, "bits", _owned(self.bits))

    def as_numpy(self) -> np.ndarray:
        return _host(self.bits)

    def count(self) -> int:
        return int(self.as_numpy().sum())
