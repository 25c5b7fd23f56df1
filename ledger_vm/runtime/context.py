"""
ledger_vm.runtime.context — per-invocation contexts handed to circuits.

QueryContext
    The ledger state a circuit reads and mutates, plus the contract address.
CircuitContext
    What a caller hands to a circuit: the query context, the private witness
    state, the cost model and the running cost. Circuits copy it on entry and
    return the copy, so the caller's object is never mutated and a failed
    call leaves no trace.
WitnessContext
    The read-only view a witness receives: decoded ledger, private state and
    contract address.

``detached_context(state)`` builds a scratch CircuitContext (dummy address) for
read-only evaluation such as decoding a ledger view. Nothing in it is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Generic, Optional, TypeVar, Union

from ..errors import LedgerVmError
from ..state.value import ChargedState, StateValue
from .cost import CostModel, RunningCost

__all__ = [
    "ContextError",
    "ADDRESS_BYTES",
    "dummy_contract_address",
    "to_address",
    "QueryContext",
    "CircuitContext",
    "WitnessContext",
    "ConstructorContext",
    "ContractState",
    "ConstructorResult",
    "CircuitResults",
    "create_circuit_context",
    "detached_context",
]

PS = TypeVar("PS")
L = TypeVar("L")
R = TypeVar("R")

ADDRESS_BYTES = 32


class ContextError(LedgerVmError):
    """Validation or coercion failure for contexts."""

    default_code = "context_error"


def to_address(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """
    Coerce a contract address to 32 raw bytes.
    Hex strings (with or without '0x') are accepted.
    """
    if isinstance(value, str):
        h = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            value = bytes.fromhex(h)
        except ValueError as e:
            raise ContextError(f"invalid hex address: {value!r}") from e
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ContextError(f"cannot convert type {type(value).__name__} to an address")
    b = bytes(value)
    if len(b) != ADDRESS_BYTES:
        raise ContextError(f"address must be {ADDRESS_BYTES} bytes, got {len(b)}")
    return b


def dummy_contract_address() -> bytes:
    return bytes(ADDRESS_BYTES)


@dataclass(frozen=True)
class QueryContext:
    state: ChargedState
    address: bytes

    def __post_init__(self) -> None:
        if isinstance(self.state, StateValue):
            object.__setattr__(self, "state", ChargedState(self.state))
        if not isinstance(self.state, ChargedState):
            raise ContextError(f"query context needs a ChargedState, got {type(self.state).__name__}")
        object.__setattr__(self, "address", to_address(self.address))

    def with_state(self, state: StateValue) -> "QueryContext":
        return QueryContext(ChargedState(state), self.address)


@dataclass
class CircuitContext(Generic[PS]):
    original_state: ChargedState
    current_query_context: QueryContext
    current_private_state: PS
    cost_model: CostModel = field(default_factory=CostModel.initial_cost_model)
    gas_cost: RunningCost = field(default_factory=RunningCost)

    def copy(self, *, cost_limit: Optional[int] = None) -> "CircuitContext[PS]":
        """Fresh invocation copy with an empty running cost."""
        return replace(self, gas_cost=RunningCost(limit=cost_limit))

    @property
    def state(self) -> StateValue:
        return self.current_query_context.state.state

    @property
    def address(self) -> bytes:
        return self.current_query_context.address


@dataclass(frozen=True)
class WitnessContext(Generic[L, PS]):
    ledger: L
    private_state: PS
    contract_address: bytes


@dataclass(frozen=True)
class ConstructorContext(Generic[PS]):
    initial_private_state: PS
    address: bytes = field(default_factory=dummy_contract_address)


@dataclass(frozen=True)
class ContractState:
    data: ChargedState
    operations: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ConstructorResult(Generic[PS]):
    current_contract_state: ContractState
    current_private_state: PS


@dataclass(frozen=True)
class CircuitResults(Generic[PS, R]):
    result: R
    context: CircuitContext[PS]
    proof_data: Any
    gas_cost: RunningCost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "costUsed": self.gas_cost.used,
            "proofData": self.proof_data.to_dict() if hasattr(self.proof_data, "to_dict") else None,
        }


def create_circuit_context(
    address: Union[bytes, str],
    state: Union[ChargedState, StateValue],
    private_state: PS,
    *,
    cost_model: Optional[CostModel] = None,
) -> CircuitContext[PS]:
    qc = QueryContext(state if isinstance(state, ChargedState) else ChargedState(state), to_address(address))
    return CircuitContext(
        original_state=qc.state,
        current_query_context=qc,
        current_private_state=private_state,
        cost_model=cost_model or CostModel.initial_cost_model(),
    )


def detached_context(state: Optional[StateValue] = None, private_state: Any = None) -> CircuitContext[Any]:
    """Scratch context for evaluation outside a call: dummy address, no persistence."""
    root = StateValue.new_null() if state is None else state
    return create_circuit_context(dummy_contract_address(), root, private_state)
