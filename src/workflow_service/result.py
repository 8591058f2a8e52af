"""Tagged outcome type shared by every fallible operation.

A `Result` is either a `Success` carrying a value or a `Failure` carrying a
failure kind, an error-like detail and a `transient` flag. Callers branch on
kind and transience instead of catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Known failure kinds.

    The set is open: any string is accepted wherever a kind is expected, so
    domain code may introduce its own kinds without extending this enum.
    """

    INVALID_ARGUMENTS = "InvalidArguments"
    DUPLICATE_EVENT = "DuplicateEvent"
    DUPLICATE_WORKFLOW = "DuplicateWorkflow"
    NOT_FOUND = "NotFound"
    CORRUPTED = "Corrupted"
    UNRECOGNIZED = "Unrecognized"
    LLM_INVOKE_TRANSIENT = "LLMInvokeTransient"
    LLM_INVOKE_PERMANENT = "LLMInvokePermanent"


class ResultError(RuntimeError):
    """Raised when a success value is demanded from a failure."""


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    kind: str
    detail: object
    transient: bool

    def __str__(self) -> str:
        return f"{self.kind}: {self.detail}"


Result: TypeAlias = "Success[T] | Failure"


def _kind_value(kind: FailureKind | str) -> str:
    return kind.value if isinstance(kind, FailureKind) else str(kind)


def make_success(value: T = None) -> Success[T]:  # type: ignore[assignment]
    return Success(value)


def make_failure(kind: FailureKind | str, detail: object, transient: bool) -> Failure:
    return Failure(kind=_kind_value(kind), detail=detail, transient=transient)


def is_success(result: Success[T] | Failure) -> bool:
    return isinstance(result, Success)


def is_failure(result: Success[T] | Failure) -> bool:
    return isinstance(result, Failure)


def is_failure_of_kind(result: Success[T] | Failure, kind: FailureKind | str) -> bool:
    return isinstance(result, Failure) and result.kind == _kind_value(kind)


def is_failure_transient(result: Success[T] | Failure) -> bool:
    return isinstance(result, Failure) and result.transient


def get_success_value_or_throw(result: Success[T] | Failure) -> T:
    """Return the success value.

    Only for call sites where a precondition already guarantees success; a
    failure here is a programming error.
    """

    if isinstance(result, Success):
        return result.value
    raise ResultError(f"Expected Success but got {result}")
