"""
ledger_vm.state.value — the tagged-value tree holding persistent contract state.

A StateValue is one of

    Null                      empty slot
    Cell(AlignedValue)        leaf holding wire segments + alignment
    Array(StateValue, ...)    ordered, at most `max_array_len` children
    Map{AlignedValue: StateValue}

Trees are immutable: ``insert``/``array_push``/``remove`` return new trees and
share untouched subtrees. Navigation never invents values; a wrong-shape or
missing key raises StructuralError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..config import load_config
from ..descriptors.alignment import AlignedValue, AtomKind
from ..errors import StructuralError

__all__ = [
    "StateValue",
    "NULL",
    "NullValue",
    "CellValue",
    "ArrayValue",
    "MapValue",
    "ChargedState",
    "NODE_OVERHEAD",
]

# Per-node bytes charged on top of cell payloads.
NODE_OVERHEAD = 1


def _array_index(key: AlignedValue, size: int) -> int:
    if len(key.alignment) != 1 or key.alignment[0].kind is AtomKind.COMPRESS:
        raise StructuralError(
            f"array index must be a numeric key, got {key.describe_alignment()}"
        )
    i = key.to_int()
    if i >= size:
        raise StructuralError(f"array index {i} out of range (size {size})", context={"index": i, "size": size})
    return i


class StateValue:
    """Base of the state tree union; use the ``new_*`` constructors."""

    __slots__ = ()

    tag: str = "abstract"

    # ---- constructors ---- #

    @staticmethod
    def new_null() -> "NullValue":
        return NULL

    @staticmethod
    def new_cell(value: AlignedValue) -> "CellValue":
        return CellValue(value)

    @staticmethod
    def new_array() -> "ArrayValue":
        return ArrayValue(())

    @staticmethod
    def new_map() -> "MapValue":
        return MapValue(())

    # ---- structural operations ---- #

    def index(self, key: AlignedValue) -> "StateValue":
        raise StructuralError(f"cannot index into {self.tag}")

    def insert(self, key: AlignedValue, value: "StateValue") -> "StateValue":
        raise StructuralError(f"cannot insert into {self.tag}")

    def remove(self, key: AlignedValue) -> "StateValue":
        raise StructuralError(f"cannot remove from {self.tag}")

    def array_push(self, value: "StateValue") -> "ArrayValue":
        raise StructuralError(f"cannot push onto {self.tag}")

    def size(self) -> int:
        return 0

    def as_cell(self) -> AlignedValue:
        raise StructuralError(f"expected a cell, found {self.tag}")

    def storage_size(self) -> int:
        return NODE_OVERHEAD

    # ---- persistence (see ledger_vm.state.codec) ---- #

    def to_obj(self) -> Any:
        raise NotImplementedError

    def encode(self) -> bytes:
        from .codec import encode_state

        return encode_state(self)

    @staticmethod
    def decode(data: bytes) -> "StateValue":
        from .codec import decode_state

        return decode_state(data)

    def to_dict(self) -> Any:
        """JSON-friendly view for logs and the CLI."""
        raise NotImplementedError


@dataclass(frozen=True)
class NullValue(StateValue):
    tag = "null"

    def to_obj(self) -> Any:
        return [0]

    def to_dict(self) -> Any:
        return None


NULL = NullValue()


@dataclass(frozen=True)
class CellValue(StateValue):
    value: AlignedValue
    tag = "cell"

    def __post_init__(self) -> None:
        if not isinstance(self.value, AlignedValue):
            raise StructuralError(f"cell holds an AlignedValue, got {type(self.value).__name__}")
        cap = load_config().max_cell_bytes
        if len(self.value.to_binary()) > cap:
            raise StructuralError(f"cell exceeds {cap} bytes")

    def as_cell(self) -> AlignedValue:
        return self.value

    def storage_size(self) -> int:
        return NODE_OVERHEAD + len(self.value.to_binary())

    def to_obj(self) -> Any:
        return [1, self.value.to_obj()]

    def to_dict(self) -> Any:
        return self.value.to_dict()


@dataclass(frozen=True)
class ArrayValue(StateValue):
    items: Tuple[StateValue, ...]
    tag = "array"

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        cap = load_config().max_array_len
        if len(self.items) > cap:
            raise StructuralError(f"array exceeds {cap} entries")

    def index(self, key: AlignedValue) -> StateValue:
        return self.items[_array_index(key, len(self.items))]

    def insert(self, key: AlignedValue, value: StateValue) -> "ArrayValue":
        i = _array_index(key, len(self.items))
        items = list(self.items)
        items[i] = value
        return ArrayValue(tuple(items))

    def array_push(self, value: StateValue) -> "ArrayValue":
        return ArrayValue(self.items + (value,))

    def size(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[StateValue]:
        return iter(self.items)

    def storage_size(self) -> int:
        return NODE_OVERHEAD + sum(v.storage_size() for v in self.items)

    def to_obj(self) -> Any:
        return [2, [v.to_obj() for v in self.items]]

    def to_dict(self) -> Any:
        return [v.to_dict() for v in self.items]


@dataclass(frozen=True)
class MapValue(StateValue):
    entries: Tuple[Tuple[AlignedValue, StateValue], ...]
    _lookup: Dict[AlignedValue, StateValue] = field(init=False, repr=False, compare=False)
    tag = "map"

    def __post_init__(self) -> None:
        lookup = dict(self.entries)
        ordered = tuple(sorted(lookup.items(), key=lambda kv: kv[0].sort_key()))
        object.__setattr__(self, "entries", ordered)
        object.__setattr__(self, "_lookup", lookup)

    @classmethod
    def from_mapping(cls, m: Mapping[AlignedValue, StateValue]) -> "MapValue":
        return cls(tuple(m.items()))

    def index(self, key: AlignedValue) -> StateValue:
        try:
            return self._lookup[key]
        except KeyError:
            raise StructuralError(f"missing map key {key.to_dict()}") from None

    def get(self, key: AlignedValue) -> Optional[StateValue]:
        return self._lookup.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._lookup

    def insert(self, key: AlignedValue, value: StateValue) -> "MapValue":
        m = dict(self._lookup)
        m[key] = value
        return MapValue.from_mapping(m)

    def remove(self, key: AlignedValue) -> "MapValue":
        if key not in self._lookup:
            raise StructuralError(f"missing map key {key.to_dict()}")
        m = dict(self._lookup)
        del m[key]
        return MapValue.from_mapping(m)

    def size(self) -> int:
        return len(self.entries)

    def keys(self) -> List[AlignedValue]:
        return [k for k, _ in self.entries]

    def storage_size(self) -> int:
        return NODE_OVERHEAD + sum(
            len(k.to_binary()) + v.storage_size() for k, v in self.entries
        )

    def to_obj(self) -> Any:
        return [3, [[k.to_obj(), v.to_obj()] for k, v in self.entries]]

    def to_dict(self) -> Any:
        return [{"key": k.to_dict(), "value": v.to_dict()} for k, v in self.entries]


@dataclass(frozen=True)
class ChargedState:
    """
    A state root paired with the opaque cost token charged for storing it.

    The token is the tree's storage size at construction time; hosts may
    compare it between transitions but never interpret it further.
    """

    state: StateValue
    charged_bytes: int = -1

    def __post_init__(self) -> None:
        if not isinstance(self.state, StateValue):
            raise StructuralError(f"ChargedState wraps a StateValue, got {type(self.state).__name__}")
        if self.charged_bytes < 0:
            object.__setattr__(self, "charged_bytes", self.state.storage_size())

    def with_state(self, state: StateValue) -> "ChargedState":
        return ChargedState(state)
