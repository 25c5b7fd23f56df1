"""
ledger_vm.runtime.cost — cost model and running cost for interpreter calls.

Every instruction is charged from a fixed table *before* it executes, plus a
per-byte charge for values written by ``ins``. The running total is threaded
through each circuit call and returned alongside its results.
With a limit configured, exceeding it raises CostLimitExceeded and the call
fails before any state is installed.

Typical usage:
    model = CostModel.initial_cost_model()
    rc = RunningCost(limit=10_000)
    rc.consume(model.cost_of(op))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import CostLimitExceeded, LedgerVmError
from .ops import Addi, Dup, Idx, Ins, Op, Popeq, Push

__all__ = ["CostModel", "RunningCost"]


@dataclass(frozen=True)
class CostModel:
    push: int = 1
    dup: int = 1
    idx: int = 8
    idx_cached: int = 2
    popeq: int = 4
    popeq_cached: int = 1
    ins: int = 10
    ins_cached: int = 4
    addi: int = 2
    per_path_step: int = 1
    per_byte_written: int = 1

    @classmethod
    def initial_cost_model(cls) -> "CostModel":
        return cls()

    def cost_of(self, op: Op) -> int:
        if isinstance(op, Push):
            return self.push
        if isinstance(op, Dup):
            return self.dup
        if isinstance(op, Idx):
            base = self.idx_cached if op.persist else self.idx
            return base + self.per_path_step * len(op.path)
        if isinstance(op, Popeq):
            return self.popeq_cached if op.persist else self.popeq
        if isinstance(op, Ins):
            return (self.ins_cached if op.persist else self.ins) * max(op.n, 1)
        if isinstance(op, Addi):
            return self.addi
        raise LedgerVmError(f"no cost entry for {type(op).__name__}")


class RunningCost:
    """
    Accumulated cost of one invocation.

    - ``used`` is monotonically non-decreasing.
    - With a limit, consume() raises CostLimitExceeded without mutating state.
    """

    __slots__ = ("_limit", "_used")

    def __init__(self, *, limit: Optional[int] = None) -> None:
        if limit is not None:
            self._require_int_ge(limit, 0, "limit")
        self._limit = limit
        self._used = 0

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    def consume(self, amount: int) -> None:
        amt = self._require_int_ge(amount, 0, "consume amount")
        new_used = self._used + amt
        if self._limit is not None and new_used > self._limit:
            raise CostLimitExceeded(
                f"cost limit exceeded: need {amt} (used {self._used}, limit {self._limit})",
                context={"used": self._used, "limit": self._limit, "need": amt},
            )
        self._used = new_used

    @staticmethod
    def _require_int_ge(v: int, lb: int, name: str) -> int:
        if isinstance(v, bool) or not isinstance(v, int):
            raise LedgerVmError(f"{name} must be int, got {type(v).__name__}")
        if v < lb:
            raise LedgerVmError(f"{name} must be >= {lb}, got {v}")
        return v

    def __repr__(self) -> str:  # pragma: no cover
        return f"RunningCost(limit={self._limit}, used={self._used})"
