"""
ledger_vm.runtime.transcript — public/private execution transcript of one call.

A TranscriptRecorder is created empty when a circuit starts, collects

  - ``input``:   the encoded circuit argument (+ alignment)
  - ``public_transcript``: every interpreter instruction executed against the
    ledger, with Popeq results filled in by the values actually read
  - ``private_transcript_outputs``: values returned by witness calls
  - ``output``:  the encoded circuit result, set exactly once at the end

and ``finish()`` freezes it into an immutable ProofData. The recorder refuses
writes after finishing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import cbor2

from ..descriptors.alignment import EMPTY, AlignedValue
from ..errors import DecodeError, TranscriptError
from .ops import Op, op_from_obj

__all__ = ["ProofData", "TranscriptRecorder"]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProofData:
    input: AlignedValue
    output: AlignedValue
    public_transcript: Tuple[Op, ...]
    private_transcript_outputs: Tuple[AlignedValue, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": self.input.to_dict(),
            "output": self.output.to_dict(),
            "publicTranscript": [op.to_dict() for op in self.public_transcript],
            "privateTranscriptOutputs": [v.to_dict() for v in self.private_transcript_outputs],
        }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    def to_cbor(self) -> bytes:
        return cbor2.dumps(
            [
                self.input.to_obj(),
                self.output.to_obj(),
                [op.to_obj() for op in self.public_transcript],
                [v.to_obj() for v in self.private_transcript_outputs],
            ],
            canonical=True,
        )

    @classmethod
    def from_cbor(cls, data: bytes) -> "ProofData":
        try:
            obj = cbor2.loads(data)
        except cbor2.CBORDecodeError as e:
            raise DecodeError(f"proof data is not valid CBOR: {e}") from e
        if not isinstance(obj, list) or len(obj) != 4:
            raise DecodeError("proof data must be a 4-element array")
        return cls(
            input=AlignedValue.from_obj(obj[0]),
            output=AlignedValue.from_obj(obj[1]),
            public_transcript=tuple(op_from_obj(o) for o in obj[2]),
            private_transcript_outputs=tuple(AlignedValue.from_obj(v) for v in obj[3]),
        )

    def public_binary(self) -> bytes:
        """Canonical bytes of the public part only (input, output, transcript)."""
        return cbor2.dumps(
            [
                self.input.to_obj(),
                self.output.to_obj(),
                [op.to_obj() for op in self.public_transcript],
            ],
            canonical=True,
        )


class TranscriptRecorder:
    __slots__ = ("_input", "_output", "_public", "_private", "_finished")

    def __init__(self, input: AlignedValue = EMPTY) -> None:
        self._input = input
        self._output: Optional[AlignedValue] = None
        self._public: List[Op] = []
        self._private: List[AlignedValue] = []
        self._finished = False

    def _check_open(self) -> None:
        if self._finished:
            raise TranscriptError("transcript already finished")

    @property
    def input(self) -> AlignedValue:
        return self._input

    @property
    def public_transcript(self) -> Tuple[Op, ...]:
        return tuple(self._public)

    @property
    def private_transcript_outputs(self) -> Tuple[AlignedValue, ...]:
        return tuple(self._private)

    @property
    def finished(self) -> bool:
        return self._finished

    def record_ops(self, ops: Iterable[Op]) -> None:
        self._check_open()
        self._public.extend(ops)

    def record_private_output(self, value: AlignedValue) -> None:
        self._check_open()
        self._private.append(value)
        log.debug("private output recorded (alignment %s)", value.describe_alignment())

    def set_output(self, value: AlignedValue) -> None:
        self._check_open()
        if self._output is not None:
            raise TranscriptError("transcript output already set")
        self._output = value

    def finish(self) -> ProofData:
        if self._output is None:
            self.set_output(EMPTY)
        self._finished = True
        return ProofData(
            input=self._input,
            output=self._output or EMPTY,
            public_transcript=tuple(self._public),
            private_transcript_outputs=tuple(self._private),
        )
