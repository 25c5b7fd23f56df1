"""
ledger_vm.runtime — path interpreter, contexts, cost accounting and transcripts.

    from ledger_vm.runtime import Interpreter, Push, Idx, Popeq, PathKey

Modules:
  ops          closed instruction set (Push | Dup | Idx | Popeq | Ins | Addi)
  interpreter  the interpreter loop and query_ledger_state()
  cost         CostModel + RunningCost
  transcript   TranscriptRecorder + ProofData
  context      QueryContext / CircuitContext / WitnessContext
  hash_api     persistent_hash and byte/field helpers
  witness      witness boundary validation
"""

from __future__ import annotations

from .context import (
    CircuitContext,
    CircuitResults,
    ConstructorContext,
    ConstructorResult,
    ContractState,
    QueryContext,
    WitnessContext,
    create_circuit_context,
    detached_context,
    dummy_contract_address,
)
from .cost import CostModel, RunningCost
from .hash_api import field_to_bytes, persistent_hash
from .interpreter import ExecResult, Interpreter, query_ledger_state, run_ops
from .ops import Addi, Dup, Idx, Ins, Op, PathKey, Popeq, Push
from .transcript import ProofData, TranscriptRecorder

__all__ = [
    "CircuitContext",
    "CircuitResults",
    "ConstructorContext",
    "ConstructorResult",
    "ContractState",
    "QueryContext",
    "WitnessContext",
    "create_circuit_context",
    "detached_context",
    "dummy_contract_address",
    "CostModel",
    "RunningCost",
    "field_to_bytes",
    "persistent_hash",
    "ExecResult",
    "Interpreter",
    "query_ledger_state",
    "run_ops",
    "Addi",
    "Dup",
    "Idx",
    "Ins",
    "Op",
    "PathKey",
    "Popeq",
    "Push",
    "ProofData",
    "TranscriptRecorder",
]
