# ampsim/controls.py
"""
Control conditions: which basis indices a gate is allowed to touch.

A ``Controls`` value is a conjunction of "bit q must equal v" constraints kept
as two bit masks over the index:

    inclusion_mask      bit q set  <=> qubit q is constrained
    desired_value_mask  bit q set  <=> qubit q must be 1

so an index i passes iff ``i & inclusion_mask == desired_value_mask``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import ConfigurationError


@dataclass(frozen=True)
class Controls:
    inclusion_mask: int = 0
    desired_value_mask: int = 0

    def __post_init__(self):
        if self.inclusion_mask < 0 or self.desired_value_mask < 0:
            raise ConfigurationError("control masks must be non-negative")
        if self.desired_value_mask & ~self.inclusion_mask:
            raise ConfigurationError(
                f"desired value mask {self.desired_value_mask:#b} sets bits outside "
                f"inclusion mask {self.inclusion_mask:#b}")

    @staticmethod
    def bit(qubit: int, desired: bool) -> "Controls":
        """Single constraint: qubit ``qubit`` must read ``desired``."""
        if qubit < 0:
            raise ConfigurationError(f"control qubit must be >= 0, got {qubit}")
        m = 1 << qubit
        return Controls(m, m if desired else 0)

    @staticmethod
    def from_dict(constraints: Dict[int, bool]) -> "Controls":
        c = Controls.NONE
        for q, v in constraints.items():
            c = c & Controls.bit(q, bool(v))
        return c

    def and_(self, other: "Controls") -> "Controls":
        """Combine two conjunctions; conflicting requirements are an error."""
        shared = self.inclusion_mask & other.inclusion_mask
        if (self.desired_value_mask ^ other.desired_value_mask) & shared:
            raise ConfigurationError(f"conflicting controls {self} and {other}")
        return Controls(self.inclusion_mask | other.inclusion_mask,
                        self.desired_value_mask | other.desired_value_mask)

    __and__ = and_

    def is_none(self) -> bool:
        return self.inclusion_mask == 0

    def allows(self, index: int) -> bool:
        return (index & self.inclusion_mask) == self.desired_value_mask

    def desired_value_for(self, qubit: int) -> Optional[bool]:
        m = 1 << qubit
        if not self.inclusion_mask & m:
            return None
        return bool(self.desired_value_mask & m)

    def qubits(self) -> List[int]:
        out = []
        m, q = self.inclusion_mask, 0
        while m:
            if m & 1:
                out.append(q)
            m >>= 1
            q += 1
        return out

    def max_qubit(self) -> int:
        """Highest constrained qubit, or -1 when unconstrained."""
        return self.inclusion_mask.bit_length() - 1

    def overlaps(self, start: int, stop: int) -> bool:
        """True when a constrained qubit lies in the bit range [start, stop)."""
        field = ((1 << (stop - start)) - 1) << start
        return bool(self.inclusion_mask & field)

    def __str__(self):
        if self.is_none():
            return "Controls.NONE"
        parts = [f"{q}:{int(self.desired_value_for(q))}" for q in self.qubits()]
        return "Controls(" + ", ".join(parts) + ")"


Controls.NONE = Controls()
