# ampsim/apply_numba.py
import numpy as np
from numba import config, njit, prange, set_num_threads, get_num_threads

from .controls import Controls
from .errors import ConfigurationError
from .gates import fourier_twiddles, operator_bits
from .state import AmplitudeBuffer, ControlMask, check_field, check_operands

# ---------- low-level kernels (Numba JIT) ----------
# No fastmath: NaN/Inf from degenerate operators must propagate unchanged.

@njit(parallel=True)
def _control_mask_kernel(bits, inc, want):
    N = bits.shape[0]
    for i in prange(N):
        bits[i] = (i & inc) == want

@njit(parallel=True)
def _qubit_operation_kernel(psi, ctl, M, t, out):
    N = psi.shape[0]
    d = M.shape[0]
    field = (d - 1) << t
    for i in prange(N):
        if not ctl[i]:
            out[i] = psi[i]
            continue
        base = i & ~field
        row = (i >> t) & (d - 1)
        acc = M[row, 0] * psi[base]
        for j in range(1, d):
            acc += M[row, j] * psi[base | (j << t)]
        out[i] = acc

@njit(parallel=True)
def _universal_not_kernel(psi, ctl, t, out):
    N = psi.shape[0]
    bit = 1 << t
    for i in prange(N):
        if not ctl[i]:
            out[i] = psi[i]
        elif i & bit:
            out[i] = -psi[i ^ bit].conjugate()
        else:
            out[i] = psi[i ^ bit].conjugate()

@njit(parallel=True)
def _increment_kernel(psi, ctl, t, span, shift, out):
    N = psi.shape[0]
    size = 1 << span
    field = (size - 1) << t
    for i in prange(N):
        if not ctl[i]:
            out[i] = psi[i]
            continue
        reg = (i >> t) & (size - 1)
        src = (i & ~field) | (((reg + size - shift) & (size - 1)) << t)
        out[i] = psi[src]

@njit(parallel=True)
def _fourier_step_kernel(psi, ctl, w, t, span, r, out):
    N = psi.shape[0]
    h = 1 << (t + span)
    low_mask = (1 << span) - 1
    for i in prange(N):
        if not ctl[i]:
            out[i] = psi[i]
            continue
        a0 = psi[i & ~h]
        v = w[(i >> t) & low_mask] * psi[i | h]
        if i & h:
            out[i] = (a0 - v) * r
        else:
            out[i] = (a0 + v) * r

# ---------- user-facing kernel entry points ----------

def set_threads(n: int):
    pool = int(config.NUMBA_NUM_THREADS)
    if not 1 <= n <= pool:
        raise ConfigurationError(f"num_threads must be in [1, {pool}] (numba thread pool), got {n}")
    set_num_threads(n)

def get_threads() -> int:
    return get_num_threads()

def empty(size: int, dtype) -> np.ndarray:
    return np.empty(size, dtype=dtype)

def control_mask(controls: Controls, n: int, out=None) -> ControlMask:
    bits = np.empty(1 << n, dtype=np.bool_) if out is None else out
    _control_mask_kernel(bits, controls.inclusion_mask, controls.desired_value_mask)
    return ControlMask(n, bits)

def qubit_operation(state: AmplitudeBuffer, operator, target: int, control: ControlMask, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    M = np.ascontiguousarray(operator, dtype=state.dtype)
    check_field(state.n, target, operator_bits(M))
    res = np.empty_like(state.psi) if out is None else out
    _qubit_operation_kernel(state.psi, control.bits, M, target, res)
    return AmplitudeBuffer(state.n, res)

def universal_not(state: AmplitudeBuffer, control: ControlMask, target: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    check_field(state.n, target, 1)
    res = np.empty_like(state.psi) if out is None else out
    _universal_not_kernel(state.psi, control.bits, target, res)
    return AmplitudeBuffer(state.n, res)

def increment(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, amount: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    if span < 1:
        raise ConfigurationError(f"register span must be >= 1, got {span}")
    check_field(state.n, target, span, "register")
    res = np.empty_like(state.psi) if out is None else out
    # reduce on the host so arbitrarily large amounts never overflow int64
    shift = int(amount) % (1 << span)
    _increment_kernel(state.psi, control.bits, target, span, shift, res)
    return AmplitudeBuffer(state.n, res)

def fourier_step(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, out=None) -> AmplitudeBuffer:
    check_operands(state, control, out)
    if span < 0:
        raise ConfigurationError(f"fourier span must be >= 0, got {span}")
    check_field(state.n, target, span + 1, "fourier")
    res = np.empty_like(state.psi) if out is None else out
    w = fourier_twiddles(span, dtype=state.dtype)
    r = state.psi.real.dtype.type(np.sqrt(0.5))
    _fourier_step_kernel(state.psi, control.bits, w, target, span, r, res)
    return AmplitudeBuffer(state.n, res)
