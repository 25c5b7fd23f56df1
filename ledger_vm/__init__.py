"""
ledger_vm — alignment-tagged descriptors, state trees and a stack path
interpreter for ledger-backed contracts.

Package layout:

- ledger_vm.descriptors   typed codecs to/from aligned wire segments
- ledger_vm.state         immutable state trees + canonical CBOR persistence
- ledger_vm.runtime       interpreter, contexts, cost accounting, transcripts
- ledger_vm.examples      example contracts (bulletin board)
- ledger_vm.cli           `ledger-vm` command line

Façade helpers below import lazily so ``import ledger_vm`` stays cheap:

- version() -> str
- run_ops(root, ops, **kwargs) -> ExecResult
- bboard_contract(witnesses=None) -> bulletin board Contract
"""

from __future__ import annotations

import importlib
from typing import Any, Sequence

from .version import __version__


def version() -> str:
    """Return the ledger_vm semantic version string."""
    return __version__


def run_ops(root: Any, ops: Sequence[Any], **kwargs: Any) -> Any:
    """Run an instruction sequence against ``root``; see runtime.interpreter."""
    interpreter = importlib.import_module(".runtime.interpreter", __name__)
    return interpreter.run_ops(root, ops, **kwargs)


def bboard_contract(witnesses: Any = None) -> Any:
    """Bulletin board Contract bound to ``witnesses`` (default: BBoardWitnesses)."""
    bboard = importlib.import_module(".examples.bboard.contract", __name__)
    return bboard.Contract(witnesses if witnesses is not None else bboard.BBoardWitnesses())


__all__ = ["__version__", "version", "run_ops", "bboard_contract"]
