from __future__ import annotations

import hashlib

import pytest
from hypothesis import given, settings, strategies as st

from conftest import SK_ALICE, SK_BOB, ctx_for
from ledger_vm.descriptors import BYTES32, none, pad, some
from ledger_vm.errors import ContractAssertionError, CostLimitExceeded, ShapeError, StructuralError
from ledger_vm.examples.bboard import contract as bboard
from ledger_vm.examples.bboard.contract import (
    BBoardPrivateState,
    BBoardWitnesses,
    Contract,
    State,
    ledger,
    pure_circuits,
)
from ledger_vm.runtime.context import ConstructorContext, ContextError
from ledger_vm.runtime.hash_api import field_to_bytes


def owner_key(sk: bytes, sequence: int) -> bytes:
    return pure_circuits.public_key(sk, field_to_bytes(32, sequence))


def post(contract, state, sk, msg):
    return contract.post(ctx_for(state, sk), msg)


def take_down(contract, state, sk):
    return contract.take_down(ctx_for(state, sk))


def charged(res):
    return res.context.current_query_context.state


# ----------------------------- construction ----------------------------------


def test_fresh_board_is_vacant(fresh_board):
    contract, state = fresh_board
    view = ledger(state)
    assert view.state is State.VACANT
    assert view.message == none()
    assert view.sequence == 0
    assert view.owner == bytes(32)


def test_initial_state_lists_impure_circuits(contract):
    res = contract.initial_state(ConstructorContext(BBoardPrivateState(SK_ALICE)))
    assert res.current_contract_state.operations == frozenset({"post", "takeDown"})
    assert res.current_private_state == BBoardPrivateState(SK_ALICE)
    assert ledger(res.current_contract_state).state is State.VACANT


def test_contract_requires_witnesses():
    with pytest.raises(ShapeError):
        Contract(object())


def test_circuits_reject_non_contexts(contract):
    with pytest.raises(ContextError):
        contract.post("not a context", "hi")
    with pytest.raises(ContextError):
        contract.initial_state(BBoardPrivateState(SK_ALICE))


# ----------------------------- scenarios -------------------------------------


def test_post_occupies_board_and_binds_owner(fresh_board):
    contract, state = fresh_board
    res = post(contract, state, SK_ALICE, "hello")

    assert res.result is None
    view = ledger(res.context.state)
    assert view.state is State.OCCUPIED
    assert view.message == some("hello")
    assert view.sequence == 1
    assert view.owner == owner_key(SK_ALICE, 0)
    assert res.gas_cost.used > 0


def test_post_to_occupied_board_fails_without_side_effects(fresh_board):
    contract, state = fresh_board
    occupied = charged(post(contract, state, SK_ALICE, "first"))
    ctx = ctx_for(occupied, SK_BOB)

    with pytest.raises(ContractAssertionError) as ei:
        contract.post(ctx, "second")
    assert "occupied board" in ei.value.reason
    assert ctx.current_query_context.state == occupied
    assert ledger(occupied).message == some("first")


def test_owner_takes_down_and_gets_message_back(fresh_board):
    contract, state = fresh_board
    occupied = charged(post(contract, state, SK_ALICE, "hello"))
    res = take_down(contract, occupied, SK_ALICE)

    assert res.result == "hello"
    view = ledger(res.context.state)
    assert view.state is State.VACANT
    assert view.message == none()
    assert view.sequence == 2


def test_non_owner_cannot_take_down(fresh_board):
    contract, state = fresh_board
    occupied = charged(post(contract, state, SK_ALICE, "hello"))

    with pytest.raises(ContractAssertionError) as ei:
        take_down(contract, occupied, SK_BOB)
    assert "not the current owner" in ei.value.reason
    assert ledger(occupied).state is State.OCCUPIED


def test_take_down_from_empty_board(fresh_board):
    contract, state = fresh_board
    with pytest.raises(ContractAssertionError) as ei:
        take_down(contract, state, SK_ALICE)
    assert "empty board" in ei.value.reason


def test_same_key_yields_fresh_owner_per_post(fresh_board):
    contract, state = fresh_board
    s1 = charged(post(contract, state, SK_ALICE, "one"))
    s2 = charged(take_down(contract, s1, SK_ALICE))
    s3 = charged(post(contract, s2, SK_ALICE, "two"))

    assert ledger(s1).owner == owner_key(SK_ALICE, 0)
    assert ledger(s3).owner == owner_key(SK_ALICE, 2)
    assert ledger(s1).owner != ledger(s3).owner
    assert take_down(contract, s3, SK_ALICE).result == "two"


def test_context_private_state_carries_through(fresh_board):
    contract, state = fresh_board
    res = post(contract, state, SK_ALICE, "hi")
    res2 = contract.take_down(res.context)
    assert res2.result == "hi"
    assert res2.context.current_private_state == BBoardPrivateState(SK_ALICE)


# ----------------------------- privacy ---------------------------------------


def test_secret_key_only_in_private_transcript(fresh_board):
    contract, state = fresh_board
    occupied = charged(post(contract, state, SK_ALICE, "hello"))
    for res in (post(contract, state, SK_ALICE, "hello"), take_down(contract, occupied, SK_ALICE)):
        proof = res.proof_data
        assert SK_ALICE not in proof.public_binary()
        assert BYTES32.aligned(SK_ALICE) in proof.private_transcript_outputs
        assert SK_ALICE.hex() not in str([op.to_dict() for op in proof.public_transcript])


def test_post_transcript_shape(fresh_board):
    contract, state = fresh_board
    proof = post(contract, state, SK_ALICE, "hello").proof_data
    names = [op.name for op in proof.public_transcript]
    assert names[:3] == ["dup", "idx", "popeq"]
    assert names[-3:] == ["idx", "addi", "ins"]
    assert proof.output.value == ()
    assert proof.input.value == (b"hello",)


# ----------------------------- witness boundary ------------------------------


class ShortKeyWitnesses(BBoardWitnesses):
    def local_secret_key(self, context):
        return context.private_state, b"\x01" * 31


def test_malformed_witness_aborts_before_any_write(fresh_board):
    _, state = fresh_board
    ctx = ctx_for(state, SK_ALICE)
    with pytest.raises(ShapeError):
        Contract(ShortKeyWitnesses()).post(ctx, "hi")
    assert ledger(ctx.current_query_context.state).state is State.VACANT


# ----------------------------- pure circuit ----------------------------------


def test_public_key_matches_definition():
    seq = field_to_bytes(32, 5)
    expected = hashlib.sha256(pad(32, "bboard:pk:") + seq + SK_ALICE).digest()
    assert pure_circuits.public_key(SK_ALICE, seq) == expected


@pytest.mark.parametrize(
    "sk,seq",
    [
        (b"\x00" * 31, bytes(32)),
        (SK_ALICE, bytes(33)),
        ("00" * 32, bytes(32)),
    ],
)
def test_public_key_rejects_bad_shapes(sk, seq):
    with pytest.raises(ShapeError):
        pure_circuits.public_key(sk, seq)


def test_public_key_circuit_records_only_io(fresh_board):
    contract, state = fresh_board
    ctx = ctx_for(state, SK_ALICE)
    seq = field_to_bytes(32, 0)
    res = contract.public_key(ctx, SK_ALICE, seq)

    assert res.result == pure_circuits.public_key(SK_ALICE, seq)
    assert res.proof_data.public_transcript == ()
    assert res.proof_data.output == BYTES32.aligned(res.result)
    assert res.context is ctx
    assert res.gas_cost.used == 0
    assert res.gas_cost is not ctx.gas_cost


def test_ledger_view_rejects_a_read_without_value(fresh_board, monkeypatch):
    _, state = fresh_board
    monkeypatch.setattr(bboard, "query_ledger_state", lambda ctx, rec, ops: None)
    with pytest.raises(StructuralError):
        ledger(state)


# ----------------------------- cost limit ------------------------------------


def test_cost_limit_aborts_circuit(fresh_board, env):
    contract, state = fresh_board
    env(COST_LIMIT=5)
    ctx = ctx_for(state, SK_ALICE)
    with pytest.raises(CostLimitExceeded):
        contract.post(ctx, "hi")
    assert ledger(ctx.current_query_context.state).state is State.VACANT


# ----------------------------- properties ------------------------------------

actions = st.lists(
    st.tuples(st.sampled_from(["post", "take"]), st.sampled_from([SK_ALICE, SK_BOB]), st.text(max_size=12)),
    max_size=10,
)


@settings(max_examples=40, deadline=None)
@given(actions)
def test_sequence_is_monotonic_and_board_stays_consistent(steps):
    contract = Contract(BBoardWitnesses())
    state = contract.initial_state(ConstructorContext(BBoardPrivateState(SK_ALICE))).current_contract_state.data
    poster = None

    for action, sk, msg in steps:
        before = ledger(state)
        try:
            res = post(contract, state, sk, msg) if action == "post" else take_down(contract, state, sk)
        except ContractAssertionError:
            assert ledger(state) == before
            continue
        state = charged(res)
        after = ledger(state)
        assert after.sequence == before.sequence + 1
        if action == "post":
            poster = sk
        else:
            assert sk == poster
            assert res.result == before.message.value

    view = ledger(state)
    assert (view.state is State.OCCUPIED) == view.message.is_some
