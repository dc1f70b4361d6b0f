from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class PipelineError(Exception):
    """Base class for failures that abort a conversion run."""

    kind = "pipeline"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class DecodeError(PipelineError):
    kind = "decode"


class ResizeError(PipelineError):
    kind = "resize"


class QuantizeError(PipelineError):
    kind = "quantize"


class SizeMismatchError(PipelineError):
    kind = "size_mismatch"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Pixel count mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class OutputError(PipelineError):
    kind = "io"


class DeviceError(Exception):
    """Talking to the display over HTTP failed."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: str
    detail: str

    @classmethod
    def from_exception(cls, exc: PipelineError) -> "Err":
        return cls(exc.kind, exc.detail)


Result = Union[Ok[Any], Err]
