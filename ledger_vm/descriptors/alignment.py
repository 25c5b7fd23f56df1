"""
Alignment atoms and aligned values — the wire representation shared by every
descriptor, the state tree and the transcript.

Wire layout
-----------
An *alignment* is an ordered tuple of atoms:

- bytes(n):   a fixed n-byte little-endian slot
- field:      a native field element, at most 32 bytes little-endian
- compress:   an opaque variable-length payload (strings)

A *segment* is the payload for one atom, little-endian with trailing zero
bytes stripped. ``0``, ``False`` and ``b"\\x00" * n`` therefore all encode as
the empty segment; decoders re-pad to the atom width.

Binary form
-----------
``AlignedValue.to_binary()`` lays every segment out at its atom width:

- bytes(n):   segment padded with zeros to n bytes
- field:      segment padded with zeros to 32 bytes
- compress:   LEB128(len) || segment

The binary form is the input of the persistent hash and must stay stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..errors import DecodeError, DescriptorError

FIELD_BYTES = 32


class AtomKind(str, Enum):
    BYTES = "bytes"
    FIELD = "field"
    COMPRESS = "compress"


@dataclass(frozen=True)
class AlignmentAtom:
    kind: AtomKind
    length: int = 0

    def __post_init__(self) -> None:
        if self.kind is AtomKind.BYTES and self.length < 0:
            raise DescriptorError("bytes atom length must be >= 0")
        if self.kind is not AtomKind.BYTES and self.length != 0:
            raise DescriptorError(f"{self.kind.value} atom carries no length")

    @classmethod
    def bytes(cls, length: int) -> "AlignmentAtom":
        return cls(AtomKind.BYTES, int(length))

    @classmethod
    def field(cls) -> "AlignmentAtom":
        return cls(AtomKind.FIELD)

    @classmethod
    def compress(cls) -> "AlignmentAtom":
        return cls(AtomKind.COMPRESS)

    @property
    def max_width(self) -> int | None:
        """Largest segment this atom accepts; None for compress atoms."""
        if self.kind is AtomKind.BYTES:
            return self.length
        if self.kind is AtomKind.FIELD:
            return FIELD_BYTES
        return None

    def __str__(self) -> str:
        if self.kind is AtomKind.BYTES:
            return f"bytes{self.length}"
        return self.kind.value

    def to_obj(self) -> List[Any]:
        return [self.kind.value, self.length]

    @classmethod
    def from_obj(cls, obj: Any) -> "AlignmentAtom":
        if not isinstance(obj, (list, tuple)) or len(obj) != 2:
            raise DecodeError(f"bad alignment atom: {obj!r}")
        try:
            kind = AtomKind(obj[0])
        except ValueError as e:
            raise DecodeError(f"unknown alignment atom kind {obj[0]!r}") from e
        return cls(kind, int(obj[1]))


Alignment = Tuple[AlignmentAtom, ...]


# ──────────────────────────────────────────────────────────────────────────────
# Segment helpers
# ──────────────────────────────────────────────────────────────────────────────


def strip_segment(data: bytes) -> bytes:
    """Drop trailing zero bytes (canonical segment form)."""
    return bytes(data).rstrip(b"\x00")


def int_to_segment(n: int) -> bytes:
    if n < 0:
        raise DescriptorError("cannot encode a negative integer")
    if n == 0:
        return b""
    return n.to_bytes((n.bit_length() + 7) // 8, "little")


def segment_to_int(seg: bytes) -> int:
    return int.from_bytes(seg, "little")


def uvarint_encode(n: int) -> bytes:
    """Unsigned LEB128, minimal length."""
    if n < 0:
        raise ValueError("uvarint cannot encode negative values")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def check_segment(seg: bytes, atom: AlignmentAtom) -> bytes:
    """Normalize ``seg`` for ``atom`` and reject segments wider than the slot."""
    if not isinstance(seg, (bytes, bytearray, memoryview)):
        raise DecodeError(f"segment must be bytes, got {type(seg).__name__}")
    if atom.kind is AtomKind.COMPRESS:
        return bytes(seg)
    norm = strip_segment(seg)
    width = atom.max_width
    if width is not None and len(norm) > width:
        raise DecodeError(f"segment of {len(norm)} bytes does not fit {atom}")
    return norm


# ──────────────────────────────────────────────────────────────────────────────
# AlignedValue
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlignedValue:
    """A value's segments paired with the alignment that lays them out."""

    value: Tuple[bytes, ...]
    alignment: Alignment

    def __post_init__(self) -> None:
        segs = tuple(self.value)
        align = tuple(self.alignment)
        if len(segs) != len(align):
            raise DecodeError(
                f"{len(segs)} segments for an alignment of {len(align)} atoms"
            )
        object.__setattr__(self, "value", tuple(check_segment(s, a) for s, a in zip(segs, align)))
        object.__setattr__(self, "alignment", align)

    def to_binary(self) -> bytes:
        out = bytearray()
        for seg, atom in zip(self.value, self.alignment):
            if atom.kind is AtomKind.COMPRESS:
                out += uvarint_encode(len(seg))
                out += seg
            else:
                out += seg.ljust(atom.max_width or 0, b"\x00")
        return bytes(out)

    def to_int(self) -> int:
        """Interpret a single-atom numeric value as an unsigned integer."""
        if len(self.alignment) != 1 or self.alignment[0].kind is AtomKind.COMPRESS:
            raise DecodeError(f"not a numeric value: alignment {self.describe_alignment()}")
        return segment_to_int(self.value[0])

    @classmethod
    def from_int(cls, n: int, atom: AlignmentAtom) -> "AlignedValue":
        return cls((int_to_segment(n),), (atom,))

    def describe_alignment(self) -> str:
        return "[" + ", ".join(str(a) for a in self.alignment) + "]"

    def sort_key(self) -> Tuple[bytes, Tuple[str, ...]]:
        return (self.to_binary(), tuple(str(a) for a in self.alignment))

    def to_obj(self) -> List[Any]:
        return [list(self.value), [a.to_obj() for a in self.alignment]]

    @classmethod
    def from_obj(cls, obj: Any) -> "AlignedValue":
        if not isinstance(obj, (list, tuple)) or len(obj) != 2:
            raise DecodeError(f"bad aligned value: {obj!r}")
        segs, align = obj
        return cls(tuple(bytes(s) for s in segs), tuple(AlignmentAtom.from_obj(a) for a in align))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": ["0x" + s.hex() for s in self.value],
            "alignment": [str(a) for a in self.alignment],
        }


EMPTY = AlignedValue((), ())


def concat(values: Iterable[AlignedValue]) -> AlignedValue:
    segs: List[bytes] = []
    align: List[AlignmentAtom] = []
    for v in values:
        segs.extend(v.value)
        align.extend(v.alignment)
    return AlignedValue(tuple(segs), tuple(align))


def alignment_str(alignment: Sequence[AlignmentAtom]) -> str:
    return "[" + ", ".join(str(a) for a in alignment) + "]"


__all__ = [
    "FIELD_BYTES",
    "AtomKind",
    "AlignmentAtom",
    "Alignment",
    "AlignedValue",
    "EMPTY",
    "concat",
    "alignment_str",
    "strip_segment",
    "int_to_segment",
    "segment_to_int",
    "uvarint_encode",
    "check_segment",
]
