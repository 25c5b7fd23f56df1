"""
ledger_vm.runtime.hash_api — deterministic hashing over descriptor-encoded values.

Goals
-----
- Strictly typed input: values are encoded through their descriptor first and
  the hash covers the canonical binary form (see AlignedValue.to_binary).
- SHA-256 only. For ``Vector<n, Bytes<32>>`` inputs the binary form is the
  plain concatenation of the elements, so the hash equals
  ``sha256(e0 || e1 || ...)``.

Provided APIs
-------------
- persistent_hash(descriptor, value) -> bytes32
- sha256(data) -> bytes32
- field_to_bytes(length, value) -> bytes   (little-endian, fixed length)
- bytes_to_field(data) -> int
"""

from __future__ import annotations

import hashlib
from typing import Any

from ..descriptors.types import Descriptor
from ..errors import DescriptorError

__all__ = ["persistent_hash", "sha256", "field_to_bytes", "bytes_to_field"]


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise DescriptorError(f"{name} must be bytes-like (got {type(buf).__name__})")


def sha256(data: bytes | bytearray | memoryview) -> bytes:
    return hashlib.sha256(_ensure_bytes(data, "data")).digest()


def persistent_hash(descriptor: Descriptor, value: Any) -> bytes:
    """Hash ``value`` under ``descriptor``; stable across versions."""
    return sha256(descriptor.aligned(value).to_binary())


def field_to_bytes(length: int, value: int) -> bytes:
    """Little-endian ``value`` in exactly ``length`` bytes."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DescriptorError(f"expected a non-negative int, got {value!r}")
    if value.bit_length() > 8 * length:
        raise DescriptorError(f"{value} does not fit in {length} bytes")
    return value.to_bytes(length, "little")


def bytes_to_field(data: bytes | bytearray | memoryview) -> int:
    return int.from_bytes(_ensure_bytes(data, "data"), "little")
