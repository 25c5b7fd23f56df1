"""
Type Descriptor Layer for ledger_vm.

Public surface:
  - AlignmentAtom / AlignedValue / Alignment     (wire representation)
  - Descriptor and its variants                  (typed codecs)
  - Maybe / Either / some / none                 (composite value shapes)

Example:
    from ledger_vm.descriptors import MaybeType, OPAQUE_STRING, some
    d = MaybeType(OPAQUE_STRING)
    segs = d.encode(some("hello"))
    assert d.decode(segs) == some("hello")
"""

from __future__ import annotations

from .alignment import (
    EMPTY,
    FIELD_BYTES,
    AlignedValue,
    Alignment,
    AlignmentAtom,
    AtomKind,
    alignment_str,
    concat,
)
from .types import (
    BOOLEAN,
    FIELD,
    OPAQUE_STRING,
    BooleanType,
    BytesType,
    Descriptor,
    Either,
    EitherType,
    EnumType,
    FieldType,
    Maybe,
    MaybeType,
    OpaqueStringType,
    SegmentReader,
    StructType,
    UnsignedIntegerType,
    VectorType,
    none,
    pad,
    some,
)

# Frequently used widths
UINT8 = UnsignedIntegerType(255, 1)
UINT16 = UnsignedIntegerType(65535, 2)
UINT64 = UnsignedIntegerType((1 << 64) - 1, 8)
UINT128 = UnsignedIntegerType((1 << 128) - 1, 16)
BYTES32 = BytesType(32)

__all__ = [
    "EMPTY",
    "FIELD_BYTES",
    "AlignedValue",
    "Alignment",
    "AlignmentAtom",
    "AtomKind",
    "alignment_str",
    "concat",
    "BOOLEAN",
    "FIELD",
    "OPAQUE_STRING",
    "BooleanType",
    "BytesType",
    "Descriptor",
    "Either",
    "EitherType",
    "EnumType",
    "FieldType",
    "Maybe",
    "MaybeType",
    "OpaqueStringType",
    "SegmentReader",
    "StructType",
    "UnsignedIntegerType",
    "VectorType",
    "none",
    "pad",
    "some",
    "UINT8",
    "UINT16",
    "UINT64",
    "UINT128",
    "BYTES32",
]
