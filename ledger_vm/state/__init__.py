"""State Tree Model: immutable tagged-value trees and their CBOR persistence."""

from __future__ import annotations

from .codec import decode_charged_state, decode_state, encode_charged_state, encode_state
from .value import (
    NULL,
    ArrayValue,
    CellValue,
    ChargedState,
    MapValue,
    NullValue,
    StateValue,
)

__all__ = [
    "NULL",
    "ArrayValue",
    "CellValue",
    "ChargedState",
    "MapValue",
    "NullValue",
    "StateValue",
    "encode_state",
    "decode_state",
    "encode_charged_state",
    "decode_charged_state",
]
