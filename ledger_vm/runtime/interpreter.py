"""
ledger_vm.runtime.interpreter — the path interpreter.

Design goals
------------
- One loop over a closed instruction set (see ledger_vm.runtime.ops).
- An explicit operand stack that starts as ``[root]`` and must end as
  ``[new_root]``.
- Cost charged *before* each instruction.
- No partial writes: the new root is only handed back once the whole
  sequence succeeded; the caller decides whether to install it.

Every executed instruction is returned (and, through ``query_ledger_state``,
appended to the public transcript) with Popeq results filled in by the values
actually read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..config import LedgerVMConfig, load_config
from ..descriptors.alignment import AlignedValue, check_segment, int_to_segment
from ..errors import DecodeError, StructuralError
from ..state.value import NULL, MapValue, NullValue, StateValue
from .context import CircuitContext
from .cost import CostModel, RunningCost
from .ops import OP_TYPES, Addi, Dup, Idx, Ins, Op, Popeq, Push
from .transcript import TranscriptRecorder

__all__ = ["ExecResult", "Interpreter", "run_ops", "query_ledger_state"]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecResult:
    state: StateValue
    reads: Tuple[AlignedValue, ...]
    executed: Tuple[Op, ...]
    cost_used: int

    @property
    def last_read(self) -> Optional[AlignedValue]:
        return self.reads[-1] if self.reads else None


class Interpreter:
    """Executes instruction sequences against a state root."""

    def __init__(
        self,
        *,
        cost_model: Optional[CostModel] = None,
        running_cost: Optional[RunningCost] = None,
        config: Optional[LedgerVMConfig] = None,
    ) -> None:
        self.config = config or load_config()
        self.cost_model = cost_model or CostModel.initial_cost_model()
        self.cost = running_cost or RunningCost(limit=self.config.cost_limit or None)

    def run(self, root: StateValue, ops: Sequence[Op]) -> ExecResult:
        stack: List[StateValue] = [root]
        reads: List[AlignedValue] = []
        executed: List[Op] = []
        start_cost = self.cost.used

        for pc, op in enumerate(ops):
            if not isinstance(op, OP_TYPES):
                raise StructuralError(f"unknown instruction at {pc}: {op!r}")
            self.cost.consume(self.cost_model.cost_of(op))

            if isinstance(op, Push):
                self._push(stack, op.value)
                executed.append(op)

            elif isinstance(op, Dup):
                if op.n < 0 or op.n >= len(stack):
                    raise StructuralError(f"dup {op.n} with stack depth {len(stack)}")
                self._push(stack, stack[-1 - op.n])
                executed.append(op)

            elif isinstance(op, Idx):
                self._idx(stack, op)
                executed.append(op)

            elif isinstance(op, Popeq):
                _require_len(stack, 1, "popeq")
                read = stack.pop().as_cell()
                if op.result is not None and op.result != read:
                    raise StructuralError(
                        "popeq result mismatch",
                        context={"expected": op.result.to_dict(), "found": read.to_dict()},
                    )
                reads.append(read)
                executed.append(Popeq(op.persist, read))

            elif isinstance(op, Ins):
                self._ins(stack, op)
                executed.append(op)

            elif isinstance(op, Addi):
                self._addi(stack, op)
                executed.append(op)

            log.debug("op %d %s -> depth %d", pc, op.name, len(stack))

        if len(stack) != 1:
            raise StructuralError(f"instruction sequence left {len(stack)} stack entries, expected 1")
        return ExecResult(
            state=stack[0],
            reads=tuple(reads),
            executed=tuple(executed),
            cost_used=self.cost.used - start_cost,
        )

    # ---------- instructions ---------- #

    def _push(self, stack: List[StateValue], value: StateValue) -> None:
        if not isinstance(value, StateValue):
            raise StructuralError(f"cannot push {type(value).__name__}")
        if len(stack) >= self.config.max_stack_depth:
            raise StructuralError(f"operand stack exceeds {self.config.max_stack_depth}")
        stack.append(value)

    def _idx(self, stack: List[StateValue], op: Idx) -> None:
        if len(op.path) > self.config.max_path_length:
            raise StructuralError(f"path of {len(op.path)} steps exceeds {self.config.max_path_length}")
        keys: List[AlignedValue] = []
        for step in op.path:
            if step.from_stack:
                _require_len(stack, 1, "idx stack key")
                keys.append(stack.pop().as_cell())
            else:
                keys.append(step.key)  # type: ignore[arg-type]
        _require_len(stack, 1, "idx")
        cur = stack.pop()
        for key in keys:
            if op.push_path:
                if isinstance(cur, NullValue):
                    cur = StateValue.new_map()
                self._push(stack, cur)
                self._push(stack, StateValue.new_cell(key))
                if isinstance(cur, MapValue):
                    child = cur.get(key)
                    cur = NULL if child is None else child
                    continue
            cur = cur.index(key)
        self._push(stack, cur)

    def _ins(self, stack: List[StateValue], op: Ins) -> None:
        if op.n < 0:
            raise StructuralError("ins count must be >= 0")
        _require_len(stack, 1 + 2 * op.n, "ins")
        value = stack.pop()
        self.cost.consume(self.cost_model.per_byte_written * value.storage_size())
        for _ in range(op.n):
            key = stack.pop().as_cell()
            container = stack.pop()
            value = container.insert(key, value)
        self._push(stack, value)

    def _addi(self, stack: List[StateValue], op: Addi) -> None:
        if op.immediate < 0:
            raise StructuralError("addi immediate must be >= 0")
        _require_len(stack, 1, "addi")
        cell = stack.pop().as_cell()
        try:
            n = cell.to_int() + op.immediate
            seg = check_segment(int_to_segment(n), cell.alignment[0])
        except DecodeError as e:
            raise StructuralError(f"addi: {e.message}") from e
        self._push(stack, StateValue.new_cell(AlignedValue((seg,), cell.alignment)))


def _require_len(stack: Sequence[Any], n: int, ctx: str) -> None:
    if len(stack) < n:
        raise StructuralError(f"stack underflow in {ctx}: need {n}, have {len(stack)}")


def run_ops(root: StateValue, ops: Sequence[Op], **kwargs: Any) -> ExecResult:
    """Run ``ops`` against ``root`` with a throwaway interpreter."""
    return Interpreter(**kwargs).run(root, ops)


def query_ledger_state(
    context: CircuitContext[Any],
    recorder: TranscriptRecorder,
    ops: Sequence[Op],
) -> Optional[AlignedValue]:
    """
    Run ``ops`` against the context's current state, install the new root in
    the context, append the executed instructions to the public transcript and
    return the value read by the last Popeq (None when nothing was read).
    """
    interp = Interpreter(cost_model=context.cost_model, running_cost=context.gas_cost)
    res = interp.run(context.state, ops)
    recorder.record_ops(res.executed)
    context.current_query_context = context.current_query_context.with_state(res.state)
    return res.last_read
