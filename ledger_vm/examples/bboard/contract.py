"""
Bulletin board example contract.

A single message slot guarded by a hash-derived ownership key.

Ledger (array slots):
    0 state     Enum VACANT=0 / OCCUPIED=1
    1 message   Maybe<Opaque<string>>
    2 sequence  Uint<64>, bumped by every post and take-down
    3 owner     Bytes<32> = public_key(sk, sequence at post time)

Circuits:
    post(ctx, new_message) -> None
        Requires VACANT. Derives the owner key from the witness secret key and
        the current sequence, stores message + owner, marks OCCUPIED.
    take_down(ctx) -> str
        Requires OCCUPIED and a secret key that re-derives the stored owner
        key. Clears the slot and returns the former message.
    public_key(sk, sequence_bytes) -> bytes   (pure)
        sha256(pad(32, "bboard:pk:") || sequence_bytes || sk)

Because the sequence moves on after every post and take-down, one secret key
yields a different owner key for every post.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Generic, List, Tuple, TypeVar, Union

from ledger_vm.descriptors import (
    BYTES32,
    EMPTY,
    OPAQUE_STRING,
    UINT8,
    UINT64,
    AlignedValue,
    Descriptor,
    EnumType,
    Maybe,
    MaybeType,
    VectorType,
    none,
    pad,
    some,
)
from ledger_vm.config import load_config
from ledger_vm.errors import ShapeError, StructuralError, assert_that
from ledger_vm.runtime.context import (
    CircuitContext,
    CircuitResults,
    ConstructorContext,
    ConstructorResult,
    ContextError,
    ContractState,
    create_circuit_context,
    detached_context,
)
from ledger_vm.runtime.cost import RunningCost
from ledger_vm.runtime.hash_api import field_to_bytes, persistent_hash
from ledger_vm.runtime.interpreter import query_ledger_state
from ledger_vm.runtime.ops import Addi, Dup, Idx, Ins, Op, PathKey, Popeq, Push
from ledger_vm.runtime.transcript import TranscriptRecorder
from ledger_vm.runtime.witness import call_witness, check_witnesses
from ledger_vm.state.value import ChargedState, StateValue

log = logging.getLogger(__name__)

PS = TypeVar("PS")


class State(IntEnum):
    VACANT = 0
    OCCUPIED = 1


# Ledger slot indices
IDX_STATE = 0
IDX_MESSAGE = 1
IDX_SEQUENCE = 2
IDX_OWNER = 3

STATE_T = EnumType(1, 1, State)
MESSAGE_T = MaybeType(OPAQUE_STRING)
SEQUENCE_T = UINT64
OWNER_T = BYTES32
SLOT_KEY_T = UINT8
PK_PREIMAGE_T = VectorType(3, BYTES32)
PK_ARGS_T = VectorType(2, BYTES32)

PK_DOMAIN = pad(32, "bboard:pk:")

MSG_OCCUPIED = "Attempted to post to an occupied board"
MSG_EMPTY = "Attempted to take down post from an empty board"
MSG_NOT_OWNER = "Attempted to take down post, but not the current owner"

WITNESS_NAMES = ("local_secret_key",)


# ──────────────────────────────────────────────────────────────────────────────
# Instruction builders
# ──────────────────────────────────────────────────────────────────────────────


def _slot(i: int) -> AlignedValue:
    return SLOT_KEY_T.aligned(i)


def _read_slot(i: int, *, cached: bool = False) -> List[Op]:
    return [
        Dup(0),
        Idx(False, False, (PathKey.value(_slot(i)),)),
        Popeq(cached),
    ]


def _write_slot(i: int, descriptor: Descriptor, value: Any) -> List[Op]:
    return [
        Push(False, StateValue.new_cell(_slot(i))),
        Push(True, StateValue.new_cell(descriptor.aligned(value))),
        Ins(False, 1),
    ]


def _increment_slot(i: int, amount: int) -> List[Op]:
    return [
        Idx(False, True, (PathKey.value(_slot(i)),)),
        Addi(amount),
        Ins(True, 1),
    ]


def _read(ctx: CircuitContext[Any], rec: TranscriptRecorder, i: int, descriptor: Descriptor, *, cached: bool = False) -> Any:
    av = query_ledger_state(ctx, rec, _read_slot(i, cached=cached))
    if av is None:
        raise StructuralError(f"read of slot {i} produced no value")
    return descriptor.from_aligned(av)


def _write(ctx: CircuitContext[Any], rec: TranscriptRecorder, i: int, descriptor: Descriptor, value: Any) -> None:
    query_ledger_state(ctx, rec, _write_slot(i, descriptor, value))


# ──────────────────────────────────────────────────────────────────────────────
# Ledger view
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Ledger:
    state: State
    message: Maybe
    sequence: int
    owner: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.name,
            "message": self.message.value if self.message.is_some else None,
            "sequence": self.sequence,
            "owner": "0x" + self.owner.hex(),
        }


def ledger(state: Union[StateValue, ChargedState, ContractState]) -> Ledger:
    """Decode the board's ledger fields from a state root."""
    if isinstance(state, ContractState):
        state = state.data
    root = state.state if isinstance(state, ChargedState) else state
    ctx = detached_context(root)
    rec = TranscriptRecorder()
    return Ledger(
        state=_read(ctx, rec, IDX_STATE, STATE_T),
        message=_read(ctx, rec, IDX_MESSAGE, MESSAGE_T),
        sequence=_read(ctx, rec, IDX_SEQUENCE, SEQUENCE_T, cached=True),
        owner=_read(ctx, rec, IDX_OWNER, OWNER_T),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Pure circuits
# ──────────────────────────────────────────────────────────────────────────────


def _check_bytes32(value: Any, what: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ShapeError(f"{what} must be Bytes<32>", context={"argument": what})
    return bytes(value)


def _public_key(sk: bytes, sequence: bytes) -> bytes:
    return persistent_hash(PK_PREIMAGE_T, (PK_DOMAIN, sequence, sk))


class PureCircuits:
    @staticmethod
    def public_key(sk: bytes, sequence: bytes) -> bytes:
        return _public_key(_check_bytes32(sk, "sk"), _check_bytes32(sequence, "sequence"))


pure_circuits = PureCircuits()


# ──────────────────────────────────────────────────────────────────────────────
# Witnesses
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BBoardPrivateState:
    secret_key: bytes

    @classmethod
    def generate(cls) -> "BBoardPrivateState":
        return cls(secrets.token_bytes(32))


class BBoardWitnesses:
    """Supplies the secret key held in the private state."""

    def local_secret_key(self, context: Any) -> Tuple[BBoardPrivateState, bytes]:
        return context.private_state, context.private_state.secret_key


# ──────────────────────────────────────────────────────────────────────────────
# Contract
# ──────────────────────────────────────────────────────────────────────────────


class Contract(Generic[PS]):
    def __init__(self, witnesses: Any) -> None:
        check_witnesses(witnesses, WITNESS_NAMES)
        self.witnesses = witnesses
        self.impure_circuits = {
            "post": self.post,
            "takeDown": self.take_down,
        }
        self.circuits = dict(self.impure_circuits, publicKey=self.public_key)

    # ---- constructor ---- #

    def initial_state(self, constructor_context: ConstructorContext[PS]) -> ConstructorResult[PS]:
        if not isinstance(constructor_context, ConstructorContext):
            raise ContextError("initial_state expects a ConstructorContext")
        root = StateValue.new_array()
        for _ in range(4):
            root = root.array_push(StateValue.new_null())
        ctx = create_circuit_context(
            constructor_context.address, root, constructor_context.initial_private_state
        )
        rec = TranscriptRecorder()
        _write(ctx, rec, IDX_STATE, STATE_T, State.VACANT)
        _write(ctx, rec, IDX_MESSAGE, MESSAGE_T, none())
        _write(ctx, rec, IDX_SEQUENCE, SEQUENCE_T, 0)
        _write(ctx, rec, IDX_OWNER, OWNER_T, bytes(32))
        log.debug("bboard initial state built (%d bytes charged)", ctx.current_query_context.state.charged_bytes)
        return ConstructorResult(
            current_contract_state=ContractState(
                data=ctx.current_query_context.state,
                operations=frozenset(self.impure_circuits),
            ),
            current_private_state=ctx.current_private_state,
        )

    # ---- impure circuits ---- #

    def post(self, context: CircuitContext[PS], new_message: str) -> CircuitResults[PS, None]:
        ctx = _enter(context, "post")
        rec = TranscriptRecorder(OPAQUE_STRING.aligned(new_message))
        self._post(ctx, rec, new_message)
        rec.set_output(EMPTY)
        return CircuitResults(None, ctx, rec.finish(), ctx.gas_cost)

    def take_down(self, context: CircuitContext[PS]) -> CircuitResults[PS, str]:
        ctx = _enter(context, "take_down")
        rec = TranscriptRecorder()
        result = self._take_down(ctx, rec)
        rec.set_output(OPAQUE_STRING.aligned(result))
        return CircuitResults(result, ctx, rec.finish(), ctx.gas_cost)

    # ---- pure circuit, circuit-style call ---- #

    def public_key(self, context: CircuitContext[PS], sk: bytes, sequence: bytes) -> CircuitResults[PS, bytes]:
        sk = _check_bytes32(sk, "sk")
        sequence = _check_bytes32(sequence, "sequence")
        rec = TranscriptRecorder(PK_ARGS_T.aligned((sk, sequence)))
        result = _public_key(sk, sequence)
        rec.set_output(OWNER_T.aligned(result))
        return CircuitResults(result, context, rec.finish(), RunningCost())

    # ---- bodies ---- #

    def _local_secret_key(self, ctx: CircuitContext[PS], rec: TranscriptRecorder) -> bytes:
        return call_witness(self.witnesses, "local_secret_key", OWNER_T, ctx, rec, ledger(ctx.state))

    def _post(self, ctx: CircuitContext[PS], rec: TranscriptRecorder, new_message: str) -> None:
        assert_that(_read(ctx, rec, IDX_STATE, STATE_T) == State.VACANT, MSG_OCCUPIED)
        sk = self._local_secret_key(ctx, rec)
        sequence = _read(ctx, rec, IDX_SEQUENCE, SEQUENCE_T, cached=True)
        owner = _public_key(sk, field_to_bytes(32, sequence))

        _write(ctx, rec, IDX_OWNER, OWNER_T, owner)
        _write(ctx, rec, IDX_MESSAGE, MESSAGE_T, some(new_message))
        _write(ctx, rec, IDX_STATE, STATE_T, State.OCCUPIED)
        query_ledger_state(ctx, rec, _increment_slot(IDX_SEQUENCE, 1))
        log.debug("bboard post at sequence %d", sequence)

    def _take_down(self, ctx: CircuitContext[PS], rec: TranscriptRecorder) -> str:
        assert_that(_read(ctx, rec, IDX_STATE, STATE_T) == State.OCCUPIED, MSG_EMPTY)
        owner = _read(ctx, rec, IDX_OWNER, OWNER_T)
        sk = self._local_secret_key(ctx, rec)
        sequence = _read(ctx, rec, IDX_SEQUENCE, SEQUENCE_T, cached=True)
        # The live post was made one sequence step ago.
        posted_at = sequence - 1
        assert_that(
            posted_at >= 0 and owner == _public_key(sk, field_to_bytes(32, posted_at)),
            MSG_NOT_OWNER,
        )
        former: Maybe = _read(ctx, rec, IDX_MESSAGE, MESSAGE_T)

        _write(ctx, rec, IDX_STATE, STATE_T, State.VACANT)
        query_ledger_state(ctx, rec, _increment_slot(IDX_SEQUENCE, 1))
        _write(ctx, rec, IDX_MESSAGE, MESSAGE_T, none())
        log.debug("bboard take-down at sequence %d", sequence)
        return former.value


def _enter(context: Any, circuit: str) -> CircuitContext[Any]:
    if not isinstance(context, CircuitContext):
        raise ContextError(f"{circuit}: expected a CircuitContext, got {type(context).__name__}")
    return context.copy(cost_limit=load_config().cost_limit or None)


__all__ = [
    "State",
    "Ledger",
    "ledger",
    "Contract",
    "PureCircuits",
    "pure_circuits",
    "BBoardPrivateState",
    "BBoardWitnesses",
    "PK_DOMAIN",
    "MSG_OCCUPIED",
    "MSG_EMPTY",
    "MSG_NOT_OWNER",
    "STATE_T",
    "MESSAGE_T",
    "SEQUENCE_T",
    "OWNER_T",
]
