"""
ledger_vm.state.codec — canonical CBOR persistence for state trees.

Layout
------
Each node encodes to a short tagged list:

    Null   -> [0]
    Cell   -> [1, [[seg, ...], [[kind, length], ...]]]
    Array  -> [2, [node, ...]]
    Map    -> [3, [[key_aligned_value, node], ...]]   keys in canonical order

A persisted ChargedState is ``[b"LVST", version, node, charged_bytes]``.

Encoding uses ``cbor2.dumps(..., canonical=True)`` so identical trees always
produce identical bytes, regardless of construction history.
"""

from __future__ import annotations

from typing import Any

import cbor2

from ..descriptors.alignment import AlignedValue
from ..errors import DecodeError
from .value import NULL, ArrayValue, CellValue, ChargedState, MapValue, StateValue

MAGIC = b"LVST"
VERSION = 1

__all__ = [
    "MAGIC",
    "VERSION",
    "state_from_obj",
    "encode_state",
    "decode_state",
    "encode_charged_state",
    "decode_charged_state",
]


def state_from_obj(obj: Any) -> StateValue:
    if not isinstance(obj, list) or not obj or not isinstance(obj[0], int):
        raise DecodeError(f"bad state node: {obj!r}")
    tag = obj[0]
    if tag == 0 and len(obj) == 1:
        return NULL
    if tag == 1 and len(obj) == 2:
        return CellValue(AlignedValue.from_obj(obj[1]))
    if tag == 2 and len(obj) == 2 and isinstance(obj[1], list):
        return ArrayValue(tuple(state_from_obj(x) for x in obj[1]))
    if tag == 3 and len(obj) == 2 and isinstance(obj[1], list):
        entries = []
        for pair in obj[1]:
            if not isinstance(pair, list) or len(pair) != 2:
                raise DecodeError(f"bad map entry: {pair!r}")
            entries.append((AlignedValue.from_obj(pair[0]), state_from_obj(pair[1])))
        return MapValue(tuple(entries))
    raise DecodeError(f"unknown state node tag {tag}")


def encode_state(state: StateValue) -> bytes:
    return cbor2.dumps(state.to_obj(), canonical=True)


def decode_state(data: bytes) -> StateValue:
    try:
        obj = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise DecodeError(f"state is not valid CBOR: {e}") from e
    return state_from_obj(obj)


def encode_charged_state(cs: ChargedState) -> bytes:
    return cbor2.dumps([MAGIC, VERSION, cs.state.to_obj(), cs.charged_bytes], canonical=True)


def decode_charged_state(data: bytes) -> ChargedState:
    try:
        obj = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise DecodeError(f"charged state is not valid CBOR: {e}") from e
    if not isinstance(obj, list) or len(obj) != 4 or obj[0] != MAGIC:
        raise DecodeError("not a ledger_vm state file")
    if obj[1] != VERSION:
        raise DecodeError(f"unsupported state file version {obj[1]!r}")
    return ChargedState(state_from_obj(obj[2]), int(obj[3]))
