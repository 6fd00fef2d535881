# ampsim/gates.py
"""Operator matrices.

Row/column j of a 2**k x 2**k operator is the value j of the target bit field
[t, t+k) (little-endian: bit t is the low bit of j). So for the 4x4 operators
below, index 1 means "bit t set", index 2 means "bit t+1 set".
"""
import numpy as np

from .errors import ConfigurationError


def _mat(rows, dtype):
    return np.array(rows, dtype=dtype)


def I(dtype=np.complex64) -> np.ndarray:
    return IDENTITY(1, dtype=dtype)

def H(dtype=np.complex64) -> np.ndarray:
    s = np.sqrt(0.5)
    return _mat([[s, s],
                  [s, -s]], dtype)

def X(dtype=np.complex64) -> np.ndarray:
    return _mat([[0, 1],
                 [1, 0]], dtype)

def Y(dtype=np.complex64) -> np.ndarray:
    return _mat([[0, -1j],
                 [1j, 0]], dtype)

def Z(dtype=np.complex64) -> np.ndarray:
    return _mat([[1, 0],
                 [0, -1]], dtype)

def S(dtype=np.complex64) -> np.ndarray:
    return _mat([[1, 0],
                 [0, 1j]], dtype)

def S_dag(dtype=np.complex64) -> np.ndarray:
    return _mat([[1, 0],
                 [0, -1j]], dtype)

def T(dtype=np.complex64) -> np.ndarray:
    return PHASE(np.pi / 4, dtype=dtype)

def T_dag(dtype=np.complex64) -> np.ndarray:
    return PHASE(-np.pi / 4, dtype=dtype)

def SQRT_X(dtype=np.complex64) -> np.ndarray:
    return _mat([[0.5 + 0.5j, 0.5 - 0.5j],
                 [0.5 - 0.5j, 0.5 + 0.5j]], dtype)

def RX(theta: float, dtype=np.complex64) -> np.ndarray:
    c = np.cos(theta/2.0)
    s = -1j*np.sin(theta/2.0)
    return _mat([[c, s],
                 [s, c]], dtype)

def RY(theta: float, dtype=np.complex64) -> np.ndarray:
    c, s = np.cos(theta/2.0), np.sin(theta/2.0)
    return _mat([[c, -s],
                 [s, c]], dtype)

def RZ(theta: float, dtype=np.complex64) -> np.ndarray:
    return _mat([[np.exp(-0.5j*theta), 0],
                 [0, np.exp(+0.5j*theta)]], dtype)

def PHASE(theta: float, dtype=np.complex64) -> np.ndarray:
    return _mat([[1, 0],
                 [0, np.exp(1j*theta)]], dtype)

def ZERO(k: int = 1, dtype=np.complex64) -> np.ndarray:
    d = 1 << k
    return np.zeros((d, d), dtype=dtype)

def IDENTITY(k: int = 1, dtype=np.complex64) -> np.ndarray:
    return np.eye(1 << k, dtype=dtype)

def SWAP(dtype=np.complex64) -> np.ndarray:
    # exchange |01> <-> |10> of the field [t, t+2)
    return _mat([[1, 0, 0, 0],
                 [0, 0, 1, 0],
                 [0, 1, 0, 0],
                 [0, 0, 0, 1]], dtype)

def CNOT(dtype=np.complex64) -> np.ndarray:
    # bit t controls, bit t+1 flips: |01> <-> |11>
    return _mat([[1, 0, 0, 0],
                 [0, 0, 0, 1],
                 [0, 0, 1, 0],
                 [0, 1, 0, 0]], dtype)


def is_unitary(m: np.ndarray, atol: float = 1e-6) -> bool:
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        return False
    return bool(np.allclose(m.conj().T @ m, np.eye(m.shape[0]), atol=atol))


def operator_bits(m: np.ndarray) -> int:
    """Width k of the bit field a (2**k x 2**k) operator acts on."""
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ConfigurationError(f"operator must be a square matrix, got shape {m.shape}")
    d = m.shape[0]
    if d < 2 or d & (d - 1):
        raise ConfigurationError(f"operator size must be a power of two >= 2, got {d}")
    return d.bit_length() - 1


_FIXED = {"I": I, "H": H, "X": X, "Y": Y, "Z": Z, "S": S, "S_DAG": S_dag,
          "T": T, "T_DAG": T_dag, "SQRT_X": SQRT_X, "SWAP": SWAP, "CNOT": CNOT}
_PARAM = {"RX": RX, "RY": RY, "RZ": RZ, "PHASE": PHASE}


def by_name(symbol: str, dtype=np.complex64, **params) -> np.ndarray:
    """Operator for a gate symbol, e.g. ``by_name("RZ", theta=0.3)``."""
    key = symbol.upper()
    if key in _FIXED:
        return _FIXED[key](dtype=dtype)
    if key in _PARAM:
        if "theta" not in params:
            raise ConfigurationError(f"gate {symbol} needs a 'theta' parameter")
        return _PARAM[key](params["theta"], dtype=dtype)
    raise ConfigurationError(f"unknown gate {symbol!r}")


def fourier_twiddles(span: int, dtype=np.complex64) -> np.ndarray:
    """exp(i*pi*j / 2**span) for j in [0, 2**span): one Fourier stage's phases."""
    j = np.arange(1 << span, dtype=np.float64)
    return np.exp(1j * np.pi * j / (1 << span)).astype(dtype)
