"""
ledger_vm.runtime.ops — the closed instruction set of the path interpreter.

    Push(persist, value)          → value
    Dup(n)                        → copy of the element n below the top
    Idx(persist, push_path, path) container → subtree
                                  (push_path: container → c0, k0, c1, k1, ..., subtree)
    Popeq(persist, result)        value →            (value becomes the read result)
    Ins(persist, n)               c0, k0, ..., value → rebuilt container
    Addi(immediate)               cell → cell + immediate

``persist`` on Push marks a value destined for storage (as opposed to a
scratch key). On Idx / Popeq / Ins it marks a path already touched in this
invocation, which the cost model charges at the cached rate.

Path steps are PathKey values: a literal aligned key, or ``PathKey.stack()``
meaning "pop the key from the operand stack". Stack keys are popped, in path
order, before the container.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from ..descriptors.alignment import AlignedValue
from ..state.codec import state_from_obj
from ..state.value import StateValue
from ..errors import DecodeError

__all__ = [
    "PathKey",
    "Push",
    "Dup",
    "Idx",
    "Popeq",
    "Ins",
    "Addi",
    "Op",
    "OP_TYPES",
    "op_from_obj",
]


@dataclass(frozen=True)
class PathKey:
    key: Optional[AlignedValue] = None

    @classmethod
    def value(cls, key: AlignedValue) -> "PathKey":
        return cls(key)

    @classmethod
    def stack(cls) -> "PathKey":
        return cls(None)

    @property
    def from_stack(self) -> bool:
        return self.key is None

    def to_obj(self) -> Any:
        return ["stack"] if self.key is None else ["value", self.key.to_obj()]

    def to_dict(self) -> Dict[str, Any]:
        if self.key is None:
            return {"tag": "stack"}
        return {"tag": "value", "value": self.key.to_dict()}


@dataclass(frozen=True)
class Push:
    persist: bool
    value: StateValue
    name = "push"

    def to_obj(self) -> Any:
        return [self.name, self.persist, self.value.to_obj()]

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.name, "persist": self.persist, "value": self.value.to_dict()}


@dataclass(frozen=True)
class Dup:
    n: int = 0
    name = "dup"

    def to_obj(self) -> Any:
        return [self.name, self.n]

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.name, "n": self.n}


@dataclass(frozen=True)
class Idx:
    persist: bool
    push_path: bool
    path: Tuple[PathKey, ...] = field(default_factory=tuple)
    name = "idx"

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))

    def to_obj(self) -> Any:
        return [self.name, self.persist, self.push_path, [k.to_obj() for k in self.path]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.name,
            "persist": self.persist,
            "push_path": self.push_path,
            "path": [k.to_dict() for k in self.path],
        }


@dataclass(frozen=True)
class Popeq:
    persist: bool
    result: Optional[AlignedValue] = None
    name = "popeq"

    def to_obj(self) -> Any:
        return [self.name, self.persist, None if self.result is None else self.result.to_obj()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.name,
            "persist": self.persist,
            "result": None if self.result is None else self.result.to_dict(),
        }


@dataclass(frozen=True)
class Ins:
    persist: bool
    n: int
    name = "ins"

    def to_obj(self) -> Any:
        return [self.name, self.persist, self.n]

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.name, "persist": self.persist, "n": self.n}


@dataclass(frozen=True)
class Addi:
    immediate: int
    name = "addi"

    def to_obj(self) -> Any:
        return [self.name, self.immediate]

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.name, "immediate": self.immediate}


Op = Union[Push, Dup, Idx, Popeq, Ins, Addi]
OP_TYPES = (Push, Dup, Idx, Popeq, Ins, Addi)


def _path_key_from_obj(obj: Any) -> PathKey:
    if obj == ["stack"]:
        return PathKey.stack()
    if isinstance(obj, list) and len(obj) == 2 and obj[0] == "value":
        return PathKey.value(AlignedValue.from_obj(obj[1]))
    raise DecodeError(f"bad path key: {obj!r}")


def op_from_obj(obj: Any) -> Op:
    """Inverse of ``Op.to_obj()``; used when reading transcripts back."""
    if not isinstance(obj, list) or not obj:
        raise DecodeError(f"bad instruction: {obj!r}")
    name, args = obj[0], obj[1:]
    try:
        if name == "push":
            return Push(bool(args[0]), state_from_obj(args[1]))
        if name == "dup":
            return Dup(int(args[0]))
        if name == "idx":
            return Idx(bool(args[0]), bool(args[1]), tuple(_path_key_from_obj(k) for k in args[2]))
        if name == "popeq":
            res = None if args[1] is None else AlignedValue.from_obj(args[1])
            return Popeq(bool(args[0]), res)
        if name == "ins":
            return Ins(bool(args[0]), int(args[1]))
        if name == "addi":
            return Addi(int(args[0]))
    except (IndexError, TypeError) as e:
        raise DecodeError(f"malformed {name!r} instruction: {obj!r}") from e
    raise DecodeError(f"unknown instruction {name!r}")
