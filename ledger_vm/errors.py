"""
Error taxonomy for ledger_vm.

Every error carries a short machine-readable ``code``, a human-readable
``message`` and an optional ``context`` mapping, so callers (CLI, hosts
embedding the interpreter) can render or forward them uniformly.

Classes
-------
LedgerVmError           base class
DescriptorError         value outside a descriptor's domain (caller bug)
DecodeError             wire segments do not match a descriptor's alignment
ShapeError              malformed witness return value
StructuralError         state-tree navigation / operand stack failure
ContractAssertionError  business-rule violation inside a circuit
CostLimitExceeded       configured cost cap was hit
TranscriptError         transcript recorder misuse
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class LedgerVmError(Exception):
    """
    Structured error used throughout ledger_vm.

    Supported call patterns:

        LedgerVmError("simple message")
        LedgerVmError("message", code="some_code", context={...})
    """

    default_code = "ledger_vm_error"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = str(message)
        self.code = str(code) if code is not None else self.default_code
        self.context: Dict[str, Any] = dict(context) if context else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class DescriptorError(LedgerVmError, ValueError):
    """A value handed to a descriptor does not belong to its domain."""

    default_code = "descriptor_error"


class DecodeError(LedgerVmError, ValueError):
    """Wire segments cannot be decoded with the given descriptor."""

    default_code = "decode_error"


class ShapeError(LedgerVmError, TypeError):
    """A witness returned a value of the wrong type or length."""

    default_code = "shape_error"


class StructuralError(LedgerVmError):
    """Path navigation or operand-stack failure in the interpreter."""

    default_code = "structural_error"


class ContractAssertionError(LedgerVmError):
    """A circuit's precondition failed; ``reason`` is the contract's message."""

    default_code = "assertion_failed"

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(reason, **kwargs)
        self.reason = reason


class CostLimitExceeded(LedgerVmError):
    default_code = "cost_limit_exceeded"


class TranscriptError(LedgerVmError):
    default_code = "transcript_error"


def assert_that(cond: bool, reason: str) -> None:
    """Raise ContractAssertionError(reason) unless ``cond`` holds."""
    if not cond:
        raise ContractAssertionError(reason)


__all__ = [
    "LedgerVmError",
    "DescriptorError",
    "DecodeError",
    "ShapeError",
    "StructuralError",
    "ContractAssertionError",
    "CostLimitExceeded",
    "TranscriptError",
    "assert_that",
]
