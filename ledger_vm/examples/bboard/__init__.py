"""Bulletin board: one message slot, owned by a hash-derived key."""

from .contract import (
    BBoardPrivateState,
    BBoardWitnesses,
    Contract,
    Ledger,
    State,
    ledger,
    pure_circuits,
)

__all__ = [
    "BBoardPrivateState",
    "BBoardWitnesses",
    "Contract",
    "Ledger",
    "State",
    "ledger",
    "pure_circuits",
]
