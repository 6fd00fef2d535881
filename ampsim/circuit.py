# ampsim/circuit.py
from dataclasses import dataclass, field
from typing import List, Tuple, Union

import numpy as np

from . import gates as G
from .config import DEFAULT_CONFIG, EngineConfig
from .controls import Controls
from .errors import ConfigurationError, ResourceError
from .state import check_field

# builders keep operators in double precision; kernels cast them to the buffer dtype
OP_DTYPE = np.complex128

# ---------------------------------------------------------------------
# gate ops: each one is applied by exactly one kernel

@dataclass(frozen=True, eq=False)
class MatrixOp:
    target: int
    operator: np.ndarray
    controls: Controls = Controls.NONE

    def field(self) -> Tuple[int, int]:
        return self.target, self.target + G.operator_bits(self.operator)

    def validate(self, n: int):
        G.operator_bits(self.operator)
        lo, hi = self.field()
        check_field(n, lo, hi - lo)

    def apply(self, backend, state, mask, out=None):
        return backend.qubit_operation(state, self.operator, self.target, mask, out=out)


@dataclass(frozen=True)
class UniversalNotOp:
    target: int
    controls: Controls = Controls.NONE

    def field(self) -> Tuple[int, int]:
        return self.target, self.target + 1

    def validate(self, n: int):
        check_field(n, self.target, 1)

    def apply(self, backend, state, mask, out=None):
        return backend.universal_not(state, mask, self.target, out=out)


@dataclass(frozen=True)
class IncrementOp:
    target: int
    span: int
    amount: int = 1
    controls: Controls = Controls.NONE

    def field(self) -> Tuple[int, int]:
        return self.target, self.target + self.span

    def validate(self, n: int):
        if self.span < 1:
            raise ConfigurationError(f"register span must be >= 1, got {self.span}")
        check_field(n, self.target, self.span, "register")

    def apply(self, backend, state, mask, out=None):
        return backend.increment(state, mask, self.target, self.span, self.amount, out=out)


@dataclass(frozen=True)
class FourierStepOp:
    target: int
    span: int
    controls: Controls = Controls.NONE

    def field(self) -> Tuple[int, int]:
        # the stage reads bits [target, target+span) and pairs on bit target+span
        return self.target, self.target + self.span + 1

    def validate(self, n: int):
        if self.span < 0:
            raise ConfigurationError(f"fourier span must be >= 0, got {self.span}")
        check_field(n, self.target, self.span + 1, "fourier")

    def apply(self, backend, state, mask, out=None):
        return backend.fourier_step(state, mask, self.target, self.span, out=out)


Op = Union[MatrixOp, UniversalNotOp, IncrementOp, FourierStepOp]


@dataclass
class Column:
    ops: List[Op]
    controls: Controls = Controls.NONE


# ---------------------------------------------------------------------

@dataclass
class Circuit:
    n: int
    columns: List[Column] = field(default_factory=list)

    @staticmethod
    def empty(n: int) -> "Circuit":
        return Circuit(n, [])

    def column(self, *ops: Op, controls: Controls = Controls.NONE):
        self.columns.append(Column(list(ops), controls)); return self

    def gate(self, k: int, operator, controls: Controls = Controls.NONE):
        return self.column(MatrixOp(k, np.asarray(operator)), controls=controls)

    def h(self, k: int): return self.gate(k, G.H(OP_DTYPE))
    def x(self, k: int): return self.gate(k, G.X(OP_DTYPE))
    def y(self, k: int): return self.gate(k, G.Y(OP_DTYPE))
    def z(self, k: int): return self.gate(k, G.Z(OP_DTYPE))
    def s(self, k: int): return self.gate(k, G.S(OP_DTYPE))
    def t(self, k: int): return self.gate(k, G.T(OP_DTYPE))
    def rx(self, k: int, theta: float): return self.gate(k, G.RX(theta, OP_DTYPE))
    def ry(self, k: int, theta: float): return self.gate(k, G.RY(theta, OP_DTYPE))
    def rz(self, k: int, theta: float): return self.gate(k, G.RZ(theta, OP_DTYPE))
    def phase(self, k: int, theta: float): return self.gate(k, G.PHASE(theta, OP_DTYPE))

    def cnot(self, c: int, t: int):
        return self.gate(t, G.X(OP_DTYPE), controls=Controls.bit(c, True))

    def cz(self, c: int, t: int):
        return self.gate(t, G.Z(OP_DTYPE), controls=Controls.bit(c, True))

    def ccx(self, c1: int, c2: int, t: int):
        return self.gate(t, G.X(OP_DTYPE), controls=Controls.bit(c1, True) & Controls.bit(c2, True))

    def swap(self, a: int, b: int, controls: Controls = Controls.NONE):
        if a == b:
            raise ConfigurationError("swap needs two distinct qubits")
        lo, hi = min(a, b), max(a, b)
        if hi == lo + 1:
            return self.gate(lo, G.SWAP(OP_DTYPE), controls=controls)
        for c, t in ((lo, hi), (hi, lo), (lo, hi)):
            # CNOT control on the op, caller controls on the column
            self.column(MatrixOp(t, G.X(OP_DTYPE), Controls.bit(c, True)), controls=controls)
        return self

    def universal_not(self, k: int, controls: Controls = Controls.NONE):
        return self.column(UniversalNotOp(k), controls=controls)

    def increment(self, k: int, span: int, amount: int = 1, controls: Controls = Controls.NONE):
        return self.column(IncrementOp(k, span, amount), controls=controls)

    def decrement(self, k: int, span: int, amount: int = 1, controls: Controls = Controls.NONE):
        return self.increment(k, span, -amount, controls=controls)

    def fourier_step(self, k: int, span: int, controls: Controls = Controls.NONE):
        return self.column(FourierStepOp(k, span), controls=controls)

    def qft(self, k: int, span: int, controls: Controls = Controls.NONE):
        """QFT on the register [k, k+span): reverse its bits, then one butterfly stage per bit."""
        for j in range(span // 2):
            self.swap(k + j, k + span - 1 - j, controls=controls)
        for s in range(span):
            self.fourier_step(k, s, controls=controls)
        return self

    # -----------------------------------------------------------------

    def gate_count(self) -> int:
        return sum(len(col.ops) for col in self.columns)

    def schedule(self):
        """Yield (column, gate, op, controls) in execution order."""
        for c, col in enumerate(self.columns):
            for g, op in enumerate(col.ops):
                yield c, g, op, col.controls & op.controls

    def validate(self, config: EngineConfig = DEFAULT_CONFIG):
        """Check the whole circuit against ``config`` before any kernel runs."""
        if not 1 <= self.n <= config.max_qubits:
            raise ConfigurationError(f"qubit count {self.n} outside [1, {config.max_qubits}]")
        if (1 << self.n) > config.max_buffer_size:
            raise ResourceError(
                f"{self.n} qubits need {1 << self.n} amplitudes, backend limit is {config.max_buffer_size}")

        for c, col in enumerate(self.columns):
            taken = []
            for g, op in enumerate(col.ops):
                try:
                    op.validate(self.n)
                    controls = col.controls & op.controls
                    if controls.max_qubit() >= self.n:
                        raise ConfigurationError(
                            f"control on qubit {controls.max_qubit()} but only {self.n} qubits")
                    lo, hi = op.field()
                    if controls.overlaps(lo, hi):
                        raise ConfigurationError(f"controls {controls} overlap target bits [{lo}, {hi})")
                    for other_lo, other_hi in taken:
                        if lo < other_hi and other_lo < hi:
                            raise ConfigurationError(
                                f"target bits [{lo}, {hi}) overlap [{other_lo}, {other_hi}) in the same column")
                    taken.append((lo, hi))
                except ConfigurationError as e:
                    raise ConfigurationError(e.reason, column=c, gate=g) from e

    def run(self, backend: str = "serial", dtype=np.complex64, num_threads=None, config: EngineConfig = None, initial=None):
        from .engine import Engine
        if config is None:
            config = EngineConfig(backend=backend, dtype=dtype, num_threads=num_threads)
        return Engine(config).run(self, initial=initial)
