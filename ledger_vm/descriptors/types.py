"""
Type descriptors: typed codecs pairing an alignment with encode/decode.

Each descriptor is an immutable object exposing

- ``alignment()``: the tuple of atoms its encoding occupies. A pure function of
  the descriptor (never of a value), computed once at construction.
- ``encode(value) -> tuple[bytes, ...]``: segments for a well-typed value.
- ``decode(segments) -> value``: the exact inverse; every segment must be
  consumed.
- ``default()``: the value used for absent optional payloads and unselected
  sum branches.

Composite descriptors (Vector, Maybe, Either, Struct) delegate to their
children strictly left to right and concatenate child alignments/segments in
that order. That order is the canonical byte layout.

Out-of-domain values (too large, wrong length, wrong Python type) are caller
errors and raise DescriptorError. Segments that do not fit the alignment
raise DecodeError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from ..errors import DecodeError, DescriptorError
from .alignment import (
    Alignment,
    AlignedValue,
    AlignmentAtom,
    check_segment,
    int_to_segment,
    segment_to_int,
    strip_segment,
)

__all__ = [
    "Maybe",
    "Either",
    "some",
    "none",
    "SegmentReader",
    "Descriptor",
    "EnumType",
    "UnsignedIntegerType",
    "BytesType",
    "BooleanType",
    "OpaqueStringType",
    "FieldType",
    "VectorType",
    "MaybeType",
    "EitherType",
    "StructType",
    "BOOLEAN",
    "OPAQUE_STRING",
    "FIELD",
    "pad",
]


# ──────────────────────────────────────────────────────────────────────────────
# Value shapes for composite descriptors
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Maybe:
    is_some: bool
    value: Any


@dataclass(frozen=True)
class Either:
    is_left: bool
    left: Any
    right: Any


def some(value: Any) -> Maybe:
    return Maybe(True, value)


def none(payload: Optional["Descriptor"] = None) -> Maybe:
    """Absent value for ``Maybe<payload>``; defaults to an ``Opaque<string>`` payload."""
    return Maybe(False, (payload or OPAQUE_STRING).default())


def pad(length: int, text: str) -> bytes:
    """UTF-8 encode ``text`` and right-pad with zeros to ``length`` bytes."""
    raw = text.encode("utf-8")
    if len(raw) > length:
        raise DescriptorError(f"{text!r} does not fit in {length} bytes")
    return raw.ljust(length, b"\x00")


# ──────────────────────────────────────────────────────────────────────────────
# Segment cursor
# ──────────────────────────────────────────────────────────────────────────────


class SegmentReader:
    """Left-to-right cursor over wire segments."""

    __slots__ = ("_segments", "_pos")

    def __init__(self, segments: Sequence[bytes]) -> None:
        self._segments = tuple(segments)
        self._pos = 0

    def take(self, atom: AlignmentAtom) -> bytes:
        if self._pos >= len(self._segments):
            raise DecodeError(f"ran out of segments while reading {atom}")
        seg = check_segment(self._segments[self._pos], atom)
        self._pos += 1
        return seg

    def skip(self, n: int) -> None:
        if self._pos + n > len(self._segments):
            raise DecodeError(f"cannot skip {n} segments, {self.remaining} left")
        self._pos += n

    @property
    def remaining(self) -> int:
        return len(self._segments) - self._pos


# ──────────────────────────────────────────────────────────────────────────────
# Base class
# ──────────────────────────────────────────────────────────────────────────────


class Descriptor(ABC):
    @abstractmethod
    def alignment(self) -> Alignment: ...

    @abstractmethod
    def encode(self, value: Any) -> Tuple[bytes, ...]: ...

    @abstractmethod
    def read(self, reader: SegmentReader) -> Any:
        """Consume this descriptor's segments from ``reader``."""

    @abstractmethod
    def default(self) -> Any: ...

    @property
    def name(self) -> str:
        return type(self).__name__

    def decode(self, segments: Sequence[bytes]) -> Any:
        reader = SegmentReader(segments)
        value = self.read(reader)
        if reader.remaining:
            raise DecodeError(f"{reader.remaining} trailing segments after decoding {self.name}")
        return value

    def skip(self, reader: SegmentReader) -> None:
        reader.skip(len(self.alignment()))

    def aligned(self, value: Any) -> AlignedValue:
        return AlignedValue(self.encode(value), self.alignment())

    def from_aligned(self, av: AlignedValue) -> Any:
        if av.alignment != self.alignment():
            raise DecodeError(
                f"{self.name} expects alignment of {len(self.alignment())} atoms, "
                f"got {av.describe_alignment()}"
            )
        return self.decode(av.value)


def _require_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DescriptorError(f"{what} must be an int, got {type(value).__name__}")
    return int(value)


def _require_default(descriptor: "Descriptor", value: Any, what: str) -> None:
    # decode reproduces only the default for a slot it skips
    if value != descriptor.default():
        raise DescriptorError(f"{what} must be {descriptor.default()!r}, got {value!r}")


# ──────────────────────────────────────────────────────────────────────────────
# Scalars
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UnsignedIntegerType(Descriptor):
    max_value: int
    length: int

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise DescriptorError("integer byte width must be > 0")
        if self.max_value < 0 or self.max_value.bit_length() > 8 * self.length:
            raise DescriptorError(f"max value {self.max_value} does not fit {self.length} bytes")

    @property
    def name(self) -> str:
        return f"Uint<{self.max_value}>"

    def alignment(self) -> Alignment:
        return (AlignmentAtom.bytes(self.length),)

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        v = _require_int(value, self.name)
        if v < 0 or v > self.max_value:
            raise DescriptorError(f"{v} out of range for {self.name}")
        return (int_to_segment(v),)

    def read(self, reader: SegmentReader) -> int:
        v = segment_to_int(reader.take(self.alignment()[0]))
        if v > self.max_value:
            raise DecodeError(f"{v} exceeds {self.name}")
        return v

    def default(self) -> int:
        return 0


@dataclass(frozen=True)
class EnumType(UnsignedIntegerType):
    """An enumeration stored as its ordinal; decodes to ``enum_type`` when set."""

    enum_type: Optional[Type[IntEnum]] = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.enum_type.__name__ if self.enum_type else f"Enum<{self.max_value}>"

    def read(self, reader: SegmentReader) -> Any:
        v = super().read(reader)
        if self.enum_type is None:
            return v
        try:
            return self.enum_type(v)
        except ValueError as e:
            raise DecodeError(f"{v} is not a member of {self.name}") from e

    def default(self) -> Any:
        return self.enum_type(0) if self.enum_type else 0


@dataclass(frozen=True)
class BytesType(Descriptor):
    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise DescriptorError("bytes length must be >= 0")

    @property
    def name(self) -> str:
        return f"Bytes<{self.length}>"

    def alignment(self) -> Alignment:
        return (AlignmentAtom.bytes(self.length),)

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise DescriptorError(f"{self.name} expects bytes, got {type(value).__name__}")
        b = bytes(value)
        if len(b) != self.length:
            raise DescriptorError(f"{self.name} expects exactly {self.length} bytes, got {len(b)}")
        return (strip_segment(b),)

    def read(self, reader: SegmentReader) -> bytes:
        return reader.take(self.alignment()[0]).ljust(self.length, b"\x00")

    def default(self) -> bytes:
        return bytes(self.length)


@dataclass(frozen=True)
class BooleanType(Descriptor):
    @property
    def name(self) -> str:
        return "Boolean"

    def alignment(self) -> Alignment:
        return (AlignmentAtom.bytes(1),)

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, bool):
            raise DescriptorError(f"Boolean expects bool, got {type(value).__name__}")
        return (b"\x01" if value else b"",)

    def read(self, reader: SegmentReader) -> bool:
        seg = reader.take(self.alignment()[0])
        if seg == b"":
            return False
        if seg == b"\x01":
            return True
        raise DecodeError(f"invalid boolean byte 0x{seg.hex()}")

    def default(self) -> bool:
        return False


@dataclass(frozen=True)
class OpaqueStringType(Descriptor):
    @property
    def name(self) -> str:
        return "Opaque<string>"

    def alignment(self) -> Alignment:
        return (AlignmentAtom.compress(),)

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, str):
            raise DescriptorError(f"Opaque<string> expects str, got {type(value).__name__}")
        return (value.encode("utf-8"),)

    def read(self, reader: SegmentReader) -> str:
        seg = reader.take(self.alignment()[0])
        try:
            return seg.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError("opaque string is not valid UTF-8") from e

    def default(self) -> str:
        return ""


@dataclass(frozen=True)
class FieldType(Descriptor):
    @property
    def name(self) -> str:
        return "Field"

    def alignment(self) -> Alignment:
        return (AlignmentAtom.field(),)

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        v = _require_int(value, "Field")
        if v < 0 or v.bit_length() > 256:
            raise DescriptorError(f"{v} is not a field element")
        return (int_to_segment(v),)

    def read(self, reader: SegmentReader) -> int:
        return segment_to_int(reader.take(self.alignment()[0]))

    def default(self) -> int:
        return 0


BOOLEAN = BooleanType()
OPAQUE_STRING = OpaqueStringType()
FIELD = FieldType()


# ──────────────────────────────────────────────────────────────────────────────
# Composites
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VectorType(Descriptor):
    count: int
    element: Descriptor
    _alignment: Alignment = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.count < 0:
            raise DescriptorError("vector count must be >= 0")
        object.__setattr__(self, "_alignment", self.element.alignment() * self.count)

    @property
    def name(self) -> str:
        return f"Vector<{self.count}, {self.element.name}>"

    def alignment(self) -> Alignment:
        return self._alignment

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Iterable):
            raise DescriptorError(f"{self.name} expects a sequence, got {type(value).__name__}")
        items = list(value)
        if len(items) != self.count:
            raise DescriptorError(f"{self.name} expects {self.count} items, got {len(items)}")
        out: List[bytes] = []
        for item in items:
            out.extend(self.element.encode(item))
        return tuple(out)

    def read(self, reader: SegmentReader) -> Tuple[Any, ...]:
        return tuple(self.element.read(reader) for _ in range(self.count))

    def default(self) -> Tuple[Any, ...]:
        return tuple(self.element.default() for _ in range(self.count))


@dataclass(frozen=True)
class MaybeType(Descriptor):
    """
    Optional value: ``Boolean(is_some) ++ payload``.

    The payload slot is always present. An absent value must carry the payload
    descriptor's default (see ``none(payload)``), which is what gets written;
    decoding an absent value skips the slot without interpreting it.
    """

    payload: Descriptor
    _alignment: Alignment = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_alignment", BOOLEAN.alignment() + self.payload.alignment())

    @property
    def name(self) -> str:
        return f"Maybe<{self.payload.name}>"

    def alignment(self) -> Alignment:
        return self._alignment

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, Maybe):
            raise DescriptorError(f"{self.name} expects a Maybe, got {type(value).__name__}")
        if not value.is_some:
            _require_default(self.payload, value.value, f"{self.name} absent payload")
        return BOOLEAN.encode(bool(value.is_some)) + self.payload.encode(value.value)

    def read(self, reader: SegmentReader) -> Maybe:
        if BOOLEAN.read(reader):
            return Maybe(True, self.payload.read(reader))
        self.payload.skip(reader)
        return Maybe(False, self.payload.default())

    def default(self) -> Maybe:
        return Maybe(False, self.payload.default())


@dataclass(frozen=True)
class EitherType(Descriptor):
    """Tagged choice: ``Boolean(is_left) ++ left ++ right``."""

    left: Descriptor
    right: Descriptor
    _alignment: Alignment = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_alignment",
            BOOLEAN.alignment() + self.left.alignment() + self.right.alignment(),
        )

    @property
    def name(self) -> str:
        return f"Either<{self.left.name}, {self.right.name}>"

    def alignment(self) -> Alignment:
        return self._alignment

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, Either):
            raise DescriptorError(f"{self.name} expects an Either, got {type(value).__name__}")
        if value.is_left:
            _require_default(self.right, value.right, f"{self.name} unselected right")
        else:
            _require_default(self.left, value.left, f"{self.name} unselected left")
        return BOOLEAN.encode(bool(value.is_left)) + self.left.encode(value.left) + self.right.encode(value.right)

    def read(self, reader: SegmentReader) -> Either:
        if BOOLEAN.read(reader):
            left = self.left.read(reader)
            self.right.skip(reader)
            return Either(True, left, self.right.default())
        self.left.skip(reader)
        return Either(False, self.left.default(), self.right.read(reader))

    def default(self) -> Either:
        return Either(True, self.left.default(), self.right.default())


@dataclass(frozen=True)
class StructType(Descriptor):
    """Named record; fields are laid out in declaration order."""

    type_name: str
    fields: Tuple[Tuple[str, Descriptor], ...]
    _alignment: Alignment = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple((str(k), d) for k, d in self.fields))
        names = [k for k, _ in self.fields]
        if len(set(names)) != len(names):
            raise DescriptorError(f"duplicate field names in {self.type_name}")
        align: Alignment = ()
        for _, d in self.fields:
            align += d.alignment()
        object.__setattr__(self, "_alignment", align)

    @property
    def name(self) -> str:
        return self.type_name

    def alignment(self) -> Alignment:
        return self._alignment

    def encode(self, value: Any) -> Tuple[bytes, ...]:
        if not isinstance(value, dict):
            raise DescriptorError(f"{self.name} expects a dict, got {type(value).__name__}")
        expected = {k for k, _ in self.fields}
        if set(value) != expected:
            raise DescriptorError(f"{self.name} expects fields {sorted(expected)}, got {sorted(value)}")
        out: List[bytes] = []
        for k, d in self.fields:
            out.extend(d.encode(value[k]))
        return tuple(out)

    def read(self, reader: SegmentReader) -> Dict[str, Any]:
        return {k: d.read(reader) for k, d in self.fields}

    def default(self) -> Dict[str, Any]:
        return {k: d.default() for k, d in self.fields}
