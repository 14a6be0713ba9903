"""Result values returned across the lifecycle manager boundary."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(Enum):
    """Which lifecycle step failed."""
    DOWNLOAD = "download"
    INITIALIZATION = "initialization"
    INFERENCE = "inference"
    UNLOAD = "unload"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a lifecycle operation.

    Truthy on success. On failure ``value`` is ``None`` and ``failure`` names
    the step that failed, with the underlying error message in ``error``.
    """
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: FailureKind, error: Optional[str] = None) -> "OperationResult[T]":
        return cls(failure=failure, error=error)
