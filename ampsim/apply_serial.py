# ampsim/apply_serial.py
"""
Reference kernels: one plain Python loop per kernel, one output cell per
iteration. Every kernel gathers from the completed input buffer and writes a
separate output array (ping-pong), so each cell depends only on its index.
"""
import numpy as np

from .controls import Controls
from .errors import ConfigurationError
from .gates import fourier_twiddles, operator_bits
from .state import AmplitudeBuffer, ControlMask, check_field, check_operands


def empty(size: int, dtype) -> np.ndarray:
    return np.empty(size, dtype=dtype)


def control_mask(controls: Controls, n: int, out=None) -> ControlMask:
    """mask[i] = 1 iff every constrained bit of i has its required value.

    A constraint on a qubit >= n reads that bit as 0, like any index bit above
    the register.
    """
    N = 1 << n
    bits = np.empty(N, dtype=np.bool_) if out is None else out
    inc, want = controls.inclusion_mask, controls.desired_value_mask
    for i in range(N):
        bits[i] = (i & inc) == want
    return ControlMask(n, bits)


def qubit_operation(state: AmplitudeBuffer, operator, target: int, control: ControlMask, out=None) -> AmplitudeBuffer:
    """
    Apply a 2**k x 2**k operator to the bit field [target, target+k).
    out[i] = sum_j M[row(i), j] * psi[base(i) | j << target] where the mask holds.
    """
    check_operands(state, control, out)
    M = np.asarray(operator, dtype=state.dtype)
    k = operator_bits(M)
    check_field(state.n, target, k)

    psi = state.psi
    ctl = control.bits
    res = np.empty_like(psi) if out is None else out
    d = 1 << k
    field = (d - 1) << target
    for i in range(psi.shape[0]):
        if not ctl[i]:
            res[i] = psi[i]
            continue
        base = i & ~field
        row = (i >> target) & (d - 1)
        acc = M[row, 0] * psi[base]
        for j in range(1, d):
            acc += M[row, j] * psi[base | (j << target)]
        res[i] = acc
    return AmplitudeBuffer(state.n, res)


def universal_not(state: AmplitudeBuffer, control: ControlMask, target: int, out=None) -> AmplitudeBuffer:
    """out[i] = sign(i) * conj(psi[i ^ bit]); sign is -1 where bit ``target`` of i is set."""
    check_operands(state, control, out)
    check_field(state.n, target, 1)

    psi = state.psi
    ctl = control.bits
    res = np.empty_like(psi) if out is None else out
    bit = 1 << target
    for i in range(psi.shape[0]):
        if not ctl[i]:
            res[i] = psi[i]
            continue
        v = psi[i ^ bit].conjugate()
        res[i] = -v if i & bit else v
    return AmplitudeBuffer(state.n, res)


def increment(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, amount: int, out=None) -> AmplitudeBuffer:
    """
    Add ``amount`` (mod 2**span) to the register [target, target+span).
    Pure gather: out[i] reads psi at the index whose register holds reg(i) - amount.
    """
    check_operands(state, control, out)
    if span < 1:
        raise ConfigurationError(f"register span must be >= 1, got {span}")
    check_field(state.n, target, span, "register")

    psi = state.psi
    ctl = control.bits
    res = np.empty_like(psi) if out is None else out
    size = 1 << span
    field = (size - 1) << target
    shift = int(amount) % size
    for i in range(psi.shape[0]):
        if not ctl[i]:
            res[i] = psi[i]
            continue
        reg = (i >> target) & (size - 1)
        src = (i & ~field) | (((reg + size - shift) & (size - 1)) << target)
        res[i] = psi[src]
    return AmplitudeBuffer(state.n, res)


def fourier_step(state: AmplitudeBuffer, control: ControlMask, target: int, span: int, out=None) -> AmplitudeBuffer:
    """
    One decimation-in-time butterfly stage over bit h = target + span:
        out[i] = (a0 +/- w * a1) / sqrt(2),  w = exp(i*pi*low(i) / 2**span)
    with a0/a1 the amplitudes at i with bit h cleared/set, low(i) the bits
    [target, target+span) of i, and '-' where bit h of i is set.
    """
    check_operands(state, control, out)
    if span < 0:
        raise ConfigurationError(f"fourier span must be >= 0, got {span}")
    check_field(state.n, target, span + 1, "fourier")

    psi = state.psi
    ctl = control.bits
    res = np.empty_like(psi) if out is None else out
    w = fourier_twiddles(span, dtype=psi.dtype)
    r = psi.real.dtype.type(np.sqrt(0.5))
    h = 1 << (target + span)
    low_mask = (1 << span) - 1
    for i in range(psi.shape[0]):
        if not ctl[i]:
            res[i] = psi[i]
            continue
        a0 = psi[i & ~h]
        t = w[(i >> target) & low_mask] * psi[i | h]
        res[i] = ((a0 - t) if i & h else (a0 + t)) * r
    return AmplitudeBuffer(state.n, res)
