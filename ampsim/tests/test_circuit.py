# ampsim/tests/test_circuit.py
import numpy as np
import pytest

from ampsim import gates as G
from ampsim.circuit import Circuit, IncrementOp, MatrixOp, FourierStepOp
from ampsim.config import EngineConfig
from ampsim.controls import Controls
from ampsim.errors import ConfigurationError, ResourceError
from ampsim.state import AmplitudeBuffer

def almost(p, q, tol=1e-6):
    return np.allclose(p, q, atol=tol, rtol=0)

def probs(psi):
    return np.abs(psi)**2

def basis(n, k):
    e = np.zeros(1 << n, dtype=np.float32); e[k] = 1.0
    return e


# --------------------------- small circuits ---------------------------

def test_h_on_zero(backend_name):
    st = Circuit.empty(1).h(0).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), np.array([0.5, 0.5], dtype=np.float32))

def test_x_flips(backend_name):
    # |0> -> X -> |1>
    st = Circuit.empty(1).x(0).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), basis(1, 1))

def test_cnot_control_off_noop(backend_name):
    # |00> --(CNOT c=1,t=0)--> stays |00>
    st = Circuit.empty(2).cnot(1, 0).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), basis(2, 0))

def test_cnot_control_on_flips(backend_name):
    # |10> --(CNOT c=1,t=0)--> |11>
    st = Circuit.empty(2).x(1).cnot(1, 0).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), basis(2, 3))

def test_toffoli(backend_name):
    st = Circuit.empty(3).x(0).x(1).ccx(0, 1, 2).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), basis(3, 7))
    st = Circuit.empty(3).x(0).ccx(0, 1, 2).run(backend=backend_name)
    assert almost(probs(st.as_numpy()), basis(3, 1))

def test_normalization(backend_name):
    c = Circuit.empty(3).h(0).h(1).cnot(1, 0).ry(2, 0.7).cz(2, 0).increment(0, 2)
    st = c.run(backend=backend_name)
    assert abs(1.0 - st.norm2()) < 1e-5

def test_bell_state():
    st = Circuit.empty(2).h(0).cnot(0, 1).run()
    s = np.sqrt(0.5)
    assert almost(st.as_numpy(), np.array([s, 0, 0, s]))

@pytest.mark.parametrize("a,b", [(0, 1), (1, 0), (0, 2), (3, 1)])
def test_swap_moves_basis_state(backend_name, a, b):
    n = 4
    start = AmplitudeBuffer.impulse(n, 1 << a)
    st = Circuit.empty(n).swap(a, b).run(backend=backend_name, initial=start)
    assert almost(probs(st.as_numpy()), basis(n, 1 << b))

def test_swap_same_qubit_rejected():
    with pytest.raises(ConfigurationError):
        Circuit.empty(2).swap(1, 1)

def test_controlled_swap():
    start = AmplitudeBuffer.impulse(3, 0b001)
    off = Circuit.empty(3).swap(0, 1, controls=Controls.bit(2, True)).run(initial=start)
    assert almost(probs(off.as_numpy()), basis(3, 0b001))
    on = Circuit.empty(3).x(2).swap(0, 1, controls=Controls.bit(2, True)).run(initial=start)
    assert almost(probs(on.as_numpy()), basis(3, 0b110))

def test_universal_not_on_zero():
    st = Circuit.empty(1).universal_not(0).run()
    np.testing.assert_array_equal(st.as_numpy(), np.array([0, -1], dtype=np.complex64))

@pytest.mark.parametrize("start,amount,expect", [(0, 1, 1), (0, 2, 2), (5, 3, 0), (7, 9, 0)])
def test_increment_basis(backend_name, start, amount, expect):
    st = Circuit.empty(3).increment(0, 3, amount).run(
        backend=backend_name, initial=AmplitudeBuffer.impulse(3, start))
    assert almost(probs(st.as_numpy()), basis(3, expect))

def test_decrement_wraps():
    st = Circuit.empty(3).decrement(0, 3).run()
    assert almost(probs(st.as_numpy()), basis(3, 7))

def test_controlled_increment_on_register():
    # register [1, 3), control qubit 0
    c = Circuit.empty(3).increment(1, 2, controls=Controls.bit(0, True))
    assert almost(probs(c.run(initial=AmplitudeBuffer.impulse(3, 0b000)).as_numpy()), basis(3, 0b000))
    assert almost(probs(c.run(initial=AmplitudeBuffer.impulse(3, 0b011)).as_numpy()), basis(3, 0b101))

def random_vector(N, seed=1):
    rng = np.random.default_rng(seed)
    x = rng.normal(size=N) + 1j*rng.normal(size=N)
    return x / np.linalg.norm(x)

@pytest.mark.parametrize("n", [1, 2, 3, 4])
def test_qft_matches_inverse_fft(backend_name, n):
    N = 1 << n
    x = random_vector(N, seed=n)
    start = AmplitudeBuffer.from_amplitudes(x, dtype=np.complex128)
    st = Circuit.empty(n).qft(0, n).run(backend=backend_name, dtype=np.complex128, initial=start)
    assert almost(st.as_numpy(), np.fft.ifft(x) * np.sqrt(N), tol=1e-9)

def test_qft_on_sub_register():
    # register [1, 3) of a 3-qubit buffer, bit 0 is a spectator
    x = random_vector(8, seed=11)
    start = AmplitudeBuffer.from_amplitudes(x, dtype=np.complex128)
    st = Circuit.empty(3).qft(1, 2).run(dtype=np.complex128, initial=start)
    expect = (np.fft.ifft(x.reshape(4, 2), axis=0) * 2).reshape(-1)
    assert almost(st.as_numpy(), expect, tol=1e-9)

def test_qft_of_zero_is_uniform():
    st = Circuit.empty(3).qft(0, 3).run()
    assert almost(st.as_numpy(), np.full(8, np.sqrt(1/8)), tol=1e-6)

def test_empty_circuit_returns_initial_state():
    start = AmplitudeBuffer.impulse(2, 3)
    st = Circuit.empty(2).run(initial=start)
    np.testing.assert_array_equal(st.as_numpy(), start.as_numpy())

def test_gate_count_and_schedule():
    c = Circuit.empty(3).h(0).column(MatrixOp(0, G.X()), MatrixOp(1, G.Y()), controls=Controls.bit(2, True))
    assert c.gate_count() == 3
    sched = list(c.schedule())
    assert [(col, g) for col, g, _, _ in sched] == [(0, 0), (1, 0), (1, 1)]
    assert sched[2][3] == Controls.bit(2, True)

def test_parallel_ops_in_one_column():
    c = Circuit.empty(2).column(MatrixOp(0, G.X()), MatrixOp(1, G.X()))
    assert almost(probs(c.run().as_numpy()), basis(2, 3))


# ----------------------------- validation -----------------------------

def test_target_out_of_range():
    with pytest.raises(ConfigurationError) as e:
        Circuit.empty(2).h(0).h(2).validate()
    assert e.value.column == 1 and e.value.gate == 0
    assert str(e.value).startswith("column 1, gate 0: ")

def test_negative_target():
    with pytest.raises(ConfigurationError):
        Circuit.empty(2).h(-1).validate()

def test_operator_not_power_of_two():
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).gate(0, np.eye(3)).validate()

def test_operator_not_square():
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).gate(0, np.ones((2, 4))).validate()

def test_operator_field_exceeds_register():
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).gate(2, G.SWAP()).validate()

def test_control_on_target_rejected():
    with pytest.raises(ConfigurationError, match="overlap"):
        Circuit.empty(2).gate(0, G.X(), controls=Controls.bit(0, True)).validate()

def test_control_inside_register_rejected():
    with pytest.raises(ConfigurationError, match="overlap"):
        Circuit.empty(4).increment(0, 3, controls=Controls.bit(2, False)).validate()

def test_control_on_fourier_pair_bit_rejected():
    with pytest.raises(ConfigurationError, match="overlap"):
        Circuit.empty(4).fourier_step(0, 2, controls=Controls.bit(2, True)).validate()

def test_control_above_register_rejected():
    with pytest.raises(ConfigurationError, match="only 2 qubits"):
        Circuit.empty(2).gate(0, G.X(), controls=Controls.bit(2, True)).validate()

def test_conflicting_column_and_gate_controls():
    op = MatrixOp(0, G.X(), Controls.bit(1, True))
    c = Circuit.empty(2).column(op, controls=Controls.bit(1, False))
    with pytest.raises(ConfigurationError, match="conflicting"):
        c.validate()

def test_overlapping_ops_in_one_column():
    c = Circuit.empty(3).column(MatrixOp(0, G.SWAP()), MatrixOp(1, G.H()))
    with pytest.raises(ConfigurationError) as e:
        c.validate()
    assert e.value.gate == 1

def test_bad_spans():
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).column(IncrementOp(0, 0)).validate()
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).column(FourierStepOp(0, -1)).validate()
    with pytest.raises(ConfigurationError):
        Circuit.empty(3).fourier_step(0, 3).validate()

@pytest.mark.parametrize("n", [0, 17])
def test_qubit_count_outside_limits(n):
    with pytest.raises(ConfigurationError):
        Circuit.empty(n).validate()

def test_qubit_limit_is_configurable():
    Circuit.empty(20).validate(EngineConfig(max_qubits=24))

def test_buffer_too_large_for_backend():
    with pytest.raises(ResourceError):
        Circuit.empty(10).validate(EngineConfig(max_buffer_size=512))

def test_validation_runs_before_any_kernel():
    # the bad gate sits in the last column; nothing may be evaluated
    c = Circuit.empty(2).h(0).x(1).h(5)
    with pytest.raises(ConfigurationError):
        c.run()

def test_swap_control_conflict_reported_by_validate():
    c = Circuit.empty(3).h(1).swap(0, 2, controls=Controls.bit(0, False))
    with pytest.raises(ConfigurationError, match="conflicting") as e:
        c.validate()
    assert (e.value.column, e.value.gate) == (1, 0)

def test_controlled_distant_swap():
    start = AmplitudeBuffer.impulse(3, 0b001)
    c = Circuit.empty(3).swap(0, 2, controls=Controls.bit(1, True))
    off = c.run(initial=start)
    assert almost(probs(off.as_numpy()), basis(3, 0b001))
    on = Circuit.empty(3).x(1).swap(0, 2, controls=Controls.bit(1, True)).run(initial=start)
    assert almost(probs(on.as_numpy()), basis(3, 0b110))


# ---------------------------- precision ------------------------------

def test_builders_run_at_double_precision(backend_name):
    st = Circuit.empty(1).h(0).run(backend=backend_name, dtype=np.complex128)
    assert almost(st.as_numpy(), [np.sqrt(0.5), np.sqrt(0.5)], tol=1e-15)
    st = Circuit.empty(1).ry(0, 0.3).run(backend=backend_name, dtype=np.complex128)
    assert almost(st.as_numpy(), [np.cos(0.15), np.sin(0.15)], tol=1e-15)

def test_double_precision_rotations_and_phases():
    st = Circuit.empty(2).h(0).h(1).rz(0, 0.7).phase(1, 1.1).rx(0, 0.2).run(dtype=np.complex128)
    ref = np.kron(G.PHASE(1.1, np.complex128) @ G.H(np.complex128),
                  G.RX(0.2, np.complex128) @ G.RZ(0.7, np.complex128) @ G.H(np.complex128)) @ [1, 0, 0, 0]
    assert almost(st.as_numpy(), ref, tol=1e-14)
