"""
ledger_vm.runtime.witness — the boundary to caller-supplied private values.

Witnesses are plain objects exposing one method per witness name. Each call
receives a WitnessContext and must return ``(next_private_state, value)``.
The return is validated here, once, against the witness's declared
descriptor; anything else raises ShapeError before the circuit mutates any
state. Validated values go to the private transcript only.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Tuple

from ..descriptors.types import Descriptor
from ..errors import DescriptorError, ShapeError
from .context import CircuitContext, WitnessContext
from .transcript import TranscriptRecorder

__all__ = ["check_witnesses", "check_witness_return", "call_witness"]

log = logging.getLogger(__name__)


def check_witnesses(witnesses: Any, names: Iterable[str]) -> None:
    """Ensure ``witnesses`` exposes a callable for every name in ``names``."""
    if witnesses is None:
        raise ShapeError("witnesses object is required")
    for name in names:
        if not callable(getattr(witnesses, name, None)):
            raise ShapeError(
                f"witnesses object has no callable {name!r}",
                context={"witness": name},
            )


def check_witness_return(name: str, ret: Any, descriptor: Descriptor) -> Tuple[Any, Any]:
    if not isinstance(ret, tuple) or len(ret) != 2:
        raise ShapeError(
            f"witness {name!r} must return (private_state, value)",
            context={"witness": name, "got": type(ret).__name__},
        )
    private_state, value = ret
    try:
        descriptor.encode(value)
    except DescriptorError as e:
        raise ShapeError(
            f"witness {name!r} returned a value that is not a {descriptor.name}: {e.message}",
            context={"witness": name, "expected": descriptor.name},
        ) from e
    return private_state, value


def call_witness(
    witnesses: Any,
    name: str,
    descriptor: Descriptor,
    context: CircuitContext[Any],
    recorder: TranscriptRecorder,
    ledger_view: Any,
) -> Any:
    """
    Invoke witness ``name``, validate its shape, advance the private state and
    record the value in the private transcript. Returns the value.
    """
    wctx = WitnessContext(ledger_view, context.current_private_state, context.address)
    private_state, value = check_witness_return(name, getattr(witnesses, name)(wctx), descriptor)
    context.current_private_state = private_state
    recorder.record_private_output(descriptor.aligned(value))
    log.debug("witness %s called", name)
    return value
