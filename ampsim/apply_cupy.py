# ampsim/apply_cupy.py
import cupy as cp
import numpy as np

from .controls import Controls
from .errors import ConfigurationError
from .gates import fourier_twiddles, operator_bits
from .state import AmplitudeBuffer, ControlMask, check_field, check_operands

# ----------------------------- utils -----------------------------

def to_device(state: AmplitudeBuffer) -> AmplitudeBuffer:
    """Return ``state`` with its amplitudes on the GPU (CuPy ndarray)."""
    if isinstance(state.psi, cp.ndarray):
        return state
    return AmplitudeBuffer(state.n, cp.asarray(state.psi))

def to_host(state: AmplitudeBuffer) -> AmplitudeBuffer:
    """Bring amplitudes back to the host as a NumPy ndarray (used by the engine)."""
    if isinstance(state.psi, cp.ndarray):
        return AmplitudeBuffer(state.n, cp.asnumpy(state.psi))
    return state

def empty(size: int, dtype) -> cp.ndarray:
    return cp.empty(size, dtype=dtype)

def _indices(N: int) -> cp.ndarray:
    return cp.arange(N, dtype=cp.int64)

def _psi(state: AmplitudeBuffer) -> cp.ndarray:
    return state.psi if isinstance(state.psi, cp.ndarray) else cp.asarray(state.psi)

def _bits(control: ControlMask) -> cp.ndarray:
    return control.bits if isinstance(control.bits, cp.ndarray) else cp.asarray(control.bits)

def _store(out, values) -> cp.ndarray:
    if out is None:
        return values
    out[...] = values
    return out

# -------------------------- core kernels --------------------------
# Each kernel is a whole-array gather: every output cell is computed from
# index arithmetic on cp.arange(N) and reads only the input buffer.

def control_mask(controls: Controls, n: int, out=None) -> ControlMask:
    idx = _indices(1 << n)
    bits = (idx & controls.inclusion_mask) == controls.desired_value_mask
    return ControlMask(n, _store(out, bits))

def qubit_operation(state: AmplitudeBuffer, operator, target: int, control: ControlMask, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    M_host = np.asarray(operator, dtype=state.dtype)
    k = operator_bits(M_host)
    check_field(state.n, target, k)

    psi = _psi(state)
    M = cp.asarray(M_host)
    d = 1 << k
    idx = _indices(psi.shape[0])
    base = idx & ~((d - 1) << target)
    row = (idx >> target) & (d - 1)
    acc = M[row, 0] * psi[base]
    for j in range(1, d):
        acc += M[row, j] * psi[base | (j << target)]
    return AmplitudeBuffer(state.n, _store(out, cp.where(_bits(control), acc, psi)))

def universal_not(state: AmplitudeBuffer, control: ControlMask, target: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    check_field(state.n, target, 1)

    psi = _psi(state)
    bit = 1 << target
    idx = _indices(psi.shape[0])
    v = cp.conj(psi[idx ^ bit])
    flipped = cp.where((idx & bit) != 0, -v, v)
    return AmplitudeBuffer(state.n, _store(out, cp.where(_bits(control), flipped, psi)))

def increment(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, amount: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    if span < 1:
        raise ConfigurationError(f"register span must be >= 1, got {span}")
    check_field(state.n, target, span, "register")

    psi = _psi(state)
    size = 1 << span
    shift = int(amount) % size
    idx = _indices(psi.shape[0])
    reg = (idx >> target) & (size - 1)
    src = (idx & ~((size - 1) << target)) | (((reg + size - shift) & (size - 1)) << target)
    return AmplitudeBuffer(state.n, _store(out, cp.where(_bits(control), psi[src], psi)))

def fourier_step(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    if span < 0:
        raise ConfigurationError(f"fourier span must be >= 0, got {span}")
    check_field(state.n, target, span + 1, "fourier")

    psi = _psi(state)
    w = cp.asarray(fourier_twiddles(span, dtype=state.dtype))
    r = state.psi.real.dtype.type(np.sqrt(0.5))
    h = 1 << (target + span)
    idx = _indices(psi.shape[0])
    a0 = psi[idx & ~h]
    v = w[(idx >> target) & ((1 << span) - 1)] * psi[idx | h]
    stage = cp.where((idx & h) != 0, a0 - v, a0 + v) * r
    return AmplitudeBuffer(state.n, _store(out, cp.where(_bits(control), stage, psi)))
