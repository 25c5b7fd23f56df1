from __future__ import annotations

import pytest

from ledger_vm.descriptors import UINT8, UINT64, AlignmentAtom
from ledger_vm.errors import CostLimitExceeded, StructuralError
from ledger_vm.runtime import (
    Addi,
    CostModel,
    Dup,
    Idx,
    Ins,
    Interpreter,
    PathKey,
    Popeq,
    Push,
    RunningCost,
    TranscriptRecorder,
    create_circuit_context,
    detached_context,
    dummy_contract_address,
    query_ledger_state,
    run_ops,
)
from ledger_vm.runtime.ops import op_from_obj
from ledger_vm.state import NULL, StateValue


def k(i: int):
    return UINT8.aligned(i)


def cell64(n: int) -> StateValue:
    return StateValue.new_cell(UINT64.aligned(n))


def key_cell(i: int) -> StateValue:
    return StateValue.new_cell(k(i))


def board(*values: StateValue) -> StateValue:
    arr = StateValue.new_array()
    for v in values:
        arr = arr.array_push(v)
    return arr


def read(i: int, *, persist: bool = False):
    return [Dup(0), Idx(False, False, (PathKey.value(k(i)),)), Popeq(persist)]


# ----------------------------- reads -----------------------------------------


def test_read_leaves_root_untouched_and_fills_popeq():
    root = board(cell64(5), cell64(6))
    res = run_ops(root, read(1))
    assert res.state == root
    assert res.last_read == UINT64.aligned(6)
    assert res.executed[-1] == Popeq(False, UINT64.aligned(6))


def test_popeq_with_matching_expectation_passes():
    root = board(cell64(5))
    ops = [Dup(0), Idx(False, False, (PathKey.value(k(0)),)), Popeq(False, UINT64.aligned(5))]
    assert run_ops(root, ops).last_read == UINT64.aligned(5)


def test_popeq_mismatch_raises():
    root = board(cell64(5))
    ops = [Dup(0), Idx(False, False, (PathKey.value(k(0)),)), Popeq(False, UINT64.aligned(6))]
    with pytest.raises(StructuralError):
        run_ops(root, ops)


def test_stack_keys_are_popped_before_container():
    root = StateValue.new_map().insert(k(1), cell64(9))
    ops = [Dup(0), Push(False, key_cell(1)), Idx(False, False, (PathKey.stack(),)), Popeq(False)]
    assert run_ops(root, ops).last_read == UINT64.aligned(9)


def test_multi_step_path():
    inner = board(cell64(1), cell64(2))
    root = StateValue.new_map().insert(k(4), inner)
    ops = [Dup(0), Idx(False, False, (PathKey.value(k(4)), PathKey.value(k(1)))), Popeq(False)]
    assert run_ops(root, ops).last_read == UINT64.aligned(2)


# ----------------------------- writes ----------------------------------------


def test_push_push_ins_replaces_slot():
    root = board(NULL, NULL)
    ops = [Push(False, key_cell(1)), Push(True, cell64(42)), Ins(False, 1)]
    res = run_ops(root, ops)
    assert res.state.index(k(1)) == cell64(42)
    assert res.state.index(k(0)) is NULL
    assert root.index(k(1)) is NULL


def test_push_path_then_nested_insert():
    root = StateValue.new_map().insert(k(1), StateValue.new_map())
    ops = [
        Idx(False, True, (PathKey.value(k(1)),)),
        Push(False, key_cell(2)),
        Push(True, cell64(7)),
        Ins(False, 1),
        Ins(True, 1),
    ]
    res = run_ops(root, ops)
    assert res.state.index(k(1)).index(k(2)) == cell64(7)


def test_push_path_promotes_null_containers_to_maps():
    root = StateValue.new_map()
    ops = [Idx(False, True, (PathKey.value(k(1)), PathKey.value(k(2)))), Ins(True, 2)]
    res = run_ops(root, ops)
    inner = res.state.index(k(1))
    assert inner.size() == 1
    assert inner.index(k(2)) is NULL


def test_addi_increments_in_place_keeping_alignment():
    root = board(cell64(5))
    ops = [Idx(False, True, (PathKey.value(k(0)),)), Addi(3), Ins(True, 1)]
    res = run_ops(root, ops)
    out = res.state.index(k(0)).as_cell()
    assert out == UINT64.aligned(8)
    assert out.alignment == (AlignmentAtom.bytes(8),)


def test_addi_overflow_is_structural():
    root = board(StateValue.new_cell(UINT8.aligned(255)))
    ops = [Idx(False, True, (PathKey.value(k(0)),)), Addi(1), Ins(True, 1)]
    with pytest.raises(StructuralError):
        run_ops(root, ops)


def test_addi_on_non_cell_is_structural():
    with pytest.raises(StructuralError):
        run_ops(board(NULL), [Addi(1)])


# ----------------------------- stack discipline ------------------------------


@pytest.mark.parametrize(
    "ops",
    [
        [Dup(0)],
        [Popeq(False)],
        [Popeq(False), Popeq(False)],
        [Dup(1)],
        [Ins(False, 1)],
        [Idx(False, False, (PathKey.value(k(9)),))],
        [Idx(False, False, (PathKey.stack(),))],
        ["bogus"],
    ],
)
def test_bad_sequences_raise_structural_error(ops):
    with pytest.raises(StructuralError):
        run_ops(board(cell64(1)), ops)


def test_stack_depth_is_capped(env):
    env(MAX_STACK_DEPTH=8)
    with pytest.raises(StructuralError):
        run_ops(NULL, [Dup(0)] * 8)


def test_path_length_is_capped(env):
    env(MAX_PATH_LENGTH=1)
    ops = [Idx(False, False, (PathKey.value(k(0)), PathKey.value(k(0))))]
    with pytest.raises(StructuralError):
        run_ops(board(board(NULL)), ops)


# ----------------------------- cost ------------------------------------------


def test_cost_is_charged_per_instruction():
    m = CostModel.initial_cost_model()
    res = run_ops(board(cell64(1)), read(0))
    assert res.cost_used == m.dup + m.idx + m.per_path_step + m.popeq

    cached = run_ops(board(cell64(1)), read(0, persist=True))
    assert cached.cost_used == m.dup + m.idx + m.per_path_step + m.popeq_cached


def test_ins_charges_written_bytes():
    m = CostModel.initial_cost_model()
    ops = [Push(False, key_cell(0)), Push(True, cell64(1)), Ins(False, 1)]
    res = run_ops(board(NULL), ops)
    assert res.cost_used == 2 * m.push + m.ins + m.per_byte_written * cell64(1).storage_size()


def test_cost_limit_stops_before_the_instruction():
    rc = RunningCost(limit=10)
    with pytest.raises(CostLimitExceeded):
        Interpreter(running_cost=rc).run(board(cell64(1)), read(0))
    # dup + idx fit, popeq does not
    assert rc.used == 10


def test_detached_context_is_a_scratch_copy():
    root = board(cell64(1))
    ctx = detached_context(root)
    assert ctx.address == dummy_contract_address()
    assert ctx.state == root
    assert query_ledger_state(ctx, TranscriptRecorder(), read(0)) == UINT64.aligned(1)
    assert detached_context().state is NULL


# ----------------------------- query_ledger_state ----------------------------


def test_query_ledger_state_installs_root_and_records_ops():
    ctx = create_circuit_context(dummy_contract_address(), board(NULL, cell64(3)), None)
    rec = TranscriptRecorder()

    got = query_ledger_state(ctx, rec, read(1))
    assert got == UINT64.aligned(3)

    assert query_ledger_state(ctx, rec, [Push(False, key_cell(0)), Push(True, cell64(9)), Ins(False, 1)]) is None
    assert ctx.state.index(k(0)) == cell64(9)
    assert ctx.original_state.state.index(k(0)) is NULL
    assert len(rec.public_transcript) == 6
    assert rec.public_transcript[2] == Popeq(False, UINT64.aligned(3))


def test_ops_survive_obj_round_trip():
    ops = [
        Push(True, board(cell64(1), NULL)),
        Dup(2),
        Idx(True, True, (PathKey.value(k(1)), PathKey.stack())),
        Popeq(False, UINT64.aligned(4)),
        Popeq(True),
        Ins(False, 3),
        Addi(7),
    ]
    assert [op_from_obj(op.to_obj()) for op in ops] == ops
