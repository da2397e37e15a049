"""Attempt outcomes and the final execution result.

- Operation: a zero-argument unit of work plus its idempotency flag
- AttemptOutcome: Success | RetryableFailure | TerminalFailure for one attempt
- AttemptRecord / RetryFailure: serializable failure metadata
- ExecutionResult: success value or RetryFailure, with attempt count and history
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, Any, Callable, Generic, TypeAlias, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer

from cloudretry.foundation.errors import (
    Classification,
    Classifier,
    ErrorClassifier,
    ErrorKind,
    RetryError,
    classify_exception,
)
from cloudretry.runtime.observability import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")
U = TypeVar("U")

log = get_logger("cloudretry.retry")


# ═══════════════════════════════════════════════════════════════════════════════
# Operation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Operation(Generic[T]):
    """A unit of remote work invoked fresh on every attempt.

    Attributes:
        body: Zero-argument callable (sync, or returning an awaitable for async execution)
        name: Label used in logs and failure records
        idempotent: Whether re-running is safe. Non-idempotent operations run at most once.
    """

    body: Callable[[], T]
    name: str | None = None
    idempotent: bool = True

    @property
    def label(self) -> str:
        return self.name or getattr(self.body, "__qualname__", None) or type(self.body).__qualname__

    def __call__(self) -> T:
        return self.body()

    @classmethod
    def of(cls, op: Operation[T] | Callable[[], T], *, name: str | None = None) -> Operation[T]:
        """Coerce a plain callable into an idempotent Operation."""
        if isinstance(op, Operation):
            return op if name is None else Operation(op.body, name, op.idempotent)
        return cls(op, name)


# ═══════════════════════════════════════════════════════════════════════════════
# Attempt Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class RetryableFailure:
    error: Exception
    kind: ErrorKind


@dataclass(frozen=True, slots=True)
class TerminalFailure:
    error: Exception
    kind: ErrorKind


AttemptOutcome: TypeAlias = "Success[Any] | RetryableFailure | TerminalFailure"


def _infer_kind(exc: Exception, classifier: Classifier) -> ErrorKind:
    try:
        if isinstance(classifier, ErrorClassifier):
            return classifier.kind_of(exc)
        return classify_exception(exc)
    except Exception:
        log.exception("error kind inference failed", error_type=type(exc).__name__)
        return ErrorKind.UNKNOWN


def classify_failure(exc: Exception, classifier: Classifier) -> RetryableFailure | TerminalFailure:
    """Turn a raised exception into a tagged failure.

    The classifier may return a Classification or a bool (True = retryable).
    A classifier that raises, or returns anything else, yields TerminalFailure.
    """
    kind = _infer_kind(exc, classifier)
    try:
        verdict = classifier(exc)
    except Exception:
        log.exception("classifier raised; treating failure as terminal", error_type=type(exc).__name__)
        return TerminalFailure(exc, kind)
    if verdict is True or verdict == Classification.RETRYABLE:
        return RetryableFailure(exc, kind)
    return TerminalFailure(exc, kind)


def attempt_once(operation: Operation[T], classifier: Classifier) -> AttemptOutcome:
    """Run the operation body once. Only Exception is caught; BaseException propagates."""
    try:
        value = operation()
    except Exception as exc:
        return classify_failure(exc, classifier)
    return Success(value)


async def attempt_once_async(operation: Operation[Awaitable[T]] | Operation[T], classifier: Classifier) -> AttemptOutcome:
    """Async variant: awaits the body's result when it is awaitable."""
    try:
        value = operation()
        if inspect.isawaitable(value):
            value = await value
    except Exception as exc:
        return classify_failure(exc, classifier)
    return Success(value)


# ═══════════════════════════════════════════════════════════════════════════════
# Failure Records
# ═══════════════════════════════════════════════════════════════════════════════


class StopReason(StrEnum):
    """Why the executor stopped without a success."""
    TERMINAL = "TERMINAL"
    EXHAUSTED = "EXHAUSTED"
    DEADLINE = "DEADLINE"
    CANCELLED = "CANCELLED"


class AttemptRecord(BaseModel):
    """One failed attempt: what went wrong and how long the executor waited afterwards."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")

    attempt: Annotated[int, Field(ge=1)]
    kind: ErrorKind
    classification: Classification
    error_type: str
    message: str = ""
    delay: Annotated[float, Field(ge=0.0)] | None = None
    elapsed: Annotated[float, Field(ge=0.0)] = 0.0

    @classmethod
    def of(cls, attempt: int, failure: RetryableFailure | TerminalFailure, *,
           delay: float | None = None, elapsed: float = 0.0) -> AttemptRecord:
        return cls(
            attempt=attempt,
            kind=failure.kind,
            classification=(Classification.RETRYABLE if isinstance(failure, RetryableFailure)
                            else Classification.TERMINAL),
            error_type=type(failure.error).__name__,
            message=str(failure.error),
            delay=delay,
            elapsed=max(0.0, elapsed),
        )


class RetryFailure(BaseModel):
    """Terminal result of an execution: the original error plus attempt metadata.

    The `error` attribute is the exact exception object raised by the last attempt.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid",
                              revalidate_instances="never")

    error: Exception
    kind: ErrorKind
    classification: Classification
    attempts: Annotated[int, Field(ge=1)]
    reason: StopReason
    history: tuple[AttemptRecord, ...] = ()
    operation: str | None = None

    @field_serializer("error")
    def _serialize_error(self, v: Exception) -> dict[str, str]:
        return {"type": type(v).__name__, "message": str(v)}

    @computed_field
    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__

    @property
    def retryable(self) -> bool:
        return self.classification is Classification.RETRYABLE

    def render(self) -> str:
        """One-line human-readable summary."""
        op = f"{self.operation}: " if self.operation else ""
        plural = "attempt" if self.attempts == 1 else "attempts"
        return (f"{op}{type(self.error).__name__}: {self.message} "
                f"[{self.kind}, {self.reason.lower()} after {self.attempts} {plural}]")

    def to_exception(self) -> RetryError:
        err = RetryError(self)
        err.__cause__ = self.error
        return err

    __str__ = render


# ═══════════════════════════════════════════════════════════════════════════════
# Execution Result
# ═══════════════════════════════════════════════════════════════════════════════


class ExecutionResult(Generic[T]):
    """Final outcome of a retried execution: success value or RetryFailure.

    Never raised by the executor; inspect it or call unwrap() to raise RetryError.

    Examples:
        >>> res = execute(lambda: 42)
        >>> res.is_ok(), res.unwrap(), res.attempts
        (True, 42, 1)
        >>> res.map(lambda v: v + 1).unwrap()
        43
    """

    __slots__ = ("_value", "_failure", "attempts", "history")

    def __init__(self, value: T | None, failure: RetryFailure | None, attempts: int,
                 history: tuple[AttemptRecord, ...] = ()) -> None:
        self._value = value
        self._failure = failure
        self.attempts = attempts
        self.history = history

    @classmethod
    def succeeded(cls, value: T, attempts: int, history: tuple[AttemptRecord, ...] = ()) -> ExecutionResult[T]:
        return cls(value, None, attempts, history)

    @classmethod
    def failed(cls, failure: RetryFailure) -> ExecutionResult[T]:
        return cls(None, failure, failure.attempts, failure.history)

    # ─── Type Checking ───────────────────────────────────────────────

    def is_ok(self) -> bool:
        return self._failure is None

    def is_err(self) -> bool:
        return self._failure is not None

    @property
    def failure(self) -> RetryFailure | None:
        return self._failure

    # ─── Value Extraction ──────────────────────────────────────────────

    def unwrap(self) -> T:
        """Return the success value or raise RetryError chained from the original error."""
        if self._failure is None:
            return self._value  # type: ignore[return-value]
        raise self._failure.to_exception()

    def unwrap_err(self) -> RetryFailure:
        if self._failure is not None:
            return self._failure
        raise RuntimeError(f"unwrap_err() on success: {self._value!r}")

    def unwrap_or(self, default: T) -> T:
        return self._value if self._failure is None else default  # type: ignore[return-value]

    # ─── Combinators ───────────────────────────────────────────────────

    def map(self, f: Callable[[T], U]) -> ExecutionResult[U]:
        """Apply f to the success value; failures pass through unchanged."""
        if self._failure is not None:
            return self  # type: ignore[return-value]
        return ExecutionResult(f(self._value), None, self.attempts, self.history)  # type: ignore[arg-type]

    def match(self, *, ok: Callable[[T], U], err: Callable[[RetryFailure], U]) -> U:
        """Exhaustive pattern match. Forces handling both outcomes."""
        return ok(self._value) if self._failure is None else err(self._failure)  # type: ignore[arg-type]

    # ─── Dunder Methods ──────────────────────────────────────────────────

    def __bool__(self) -> bool:
        return self._failure is None

    def __repr__(self) -> str:
        if self._failure is None:
            return f"ExecutionResult.Ok({self._value!r}, attempts={self.attempts})"
        return f"ExecutionResult.Err({self._failure.render()!r})"
