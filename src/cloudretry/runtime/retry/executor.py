"""Retry executor: run an operation under a RetryPolicy and return one ExecutionResult.

Loop per invocation: attempt -> success | terminal | wait-and-retry, bounded by
max_attempts (and optionally a deadline or cancellation). All loop state is
local to the call, so one executor may serve any number of concurrent callers.

Example:
    >>> from cloudretry import RetryPolicy, execute
    >>> policy = RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2, max_delay=1.0)
    >>> result = execute(lambda: client.describe_table(TableName="orders"), policy)
    >>> if result.is_err():
    ...     print(result.unwrap_err().render())
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from cloudretry.foundation.errors import Classification, Classifier, default_classifier
from cloudretry.runtime.concurrency import CancellationToken, checkpoint
from cloudretry.runtime.observability import BoundLogger, get_logger

from .outcome import (
    AttemptRecord,
    ExecutionResult,
    Operation,
    RetryableFailure,
    RetryFailure,
    StopReason,
    Success,
    TerminalFailure,
    attempt_once,
    attempt_once_async,
)
from .policy import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")

RetryHook = Callable[[AttemptRecord], None]

logger = get_logger("cloudretry.retry")


def _wait(delay: float, sleep: Callable[[float], object] | None, cancel: CancellationToken | None) -> bool:
    """Block between attempts. Returns True if the token was cancelled before or during the wait."""
    if cancel is None:
        (sleep or time.sleep)(delay)
        return False
    if sleep is None:
        return cancel.wait(delay)
    if not cancel.cancelled:
        sleep(delay)
    return cancel.cancelled


class _RetryLoop:
    """Per-invocation attempt bookkeeping shared by the sync and async executors."""

    __slots__ = ("op", "policy", "clock", "on_retry", "log", "limit", "attempt", "history", "_start", "_last")

    def __init__(self, op: Operation[Any], policy: RetryPolicy, clock: Callable[[], float],
                 on_retry: RetryHook | None) -> None:
        self.op, self.policy, self.clock, self.on_retry = op, policy, clock, on_retry
        self.log: BoundLogger = logger.bind(operation=op.label)
        self.limit = policy.max_attempts if op.idempotent else 1
        self.attempt = 0
        self.history: list[AttemptRecord] = []
        self._start = clock()
        self._last: RetryableFailure | None = None
        if not op.idempotent and policy.max_attempts > 1:
            self.log.debug("operation is not idempotent; retries disabled")

    def begin(self) -> None:
        self.attempt += 1
        self.log.debug("attempt started", attempt=self.attempt, max_attempts=self.limit)

    def step(self, outcome: Success[Any] | RetryableFailure | TerminalFailure) -> ExecutionResult[Any] | float:
        """Consume one attempt's outcome. Returns the final result, or the delay before the next attempt."""
        match outcome:
            case Success(value=value):
                if self.attempt > 1:
                    self.log.info("succeeded after retries", attempts=self.attempt)
                return ExecutionResult.succeeded(value, self.attempt, tuple(self.history))
            case TerminalFailure():
                return self._fail(outcome, StopReason.TERMINAL)
            case RetryableFailure():
                if self.attempt >= self.limit:
                    return self._fail(outcome, StopReason.EXHAUSTED)
                delay = self.policy.delay_before(self.attempt + 1)
                if self.policy.deadline is not None and self.elapsed() + delay > self.policy.deadline:
                    return self._fail(outcome, StopReason.DEADLINE)
                record = AttemptRecord.of(self.attempt, outcome, delay=delay, elapsed=self.elapsed())
                self.history.append(record)
                self._last = outcome
                self.log.warning("attempt failed; retrying", attempt=self.attempt, kind=outcome.kind.value,
                                 error=record.message, delay=round(delay, 3))
                self._notify(record)
                return delay
        raise TypeError(f"unexpected attempt outcome: {outcome!r}")

    def cancelled(self) -> ExecutionResult[Any]:
        """Stop during a wait; the last retryable failure becomes the reported error."""
        assert self._last is not None
        self.history.pop()
        return self._fail(self._last, StopReason.CANCELLED)

    def elapsed(self) -> float:
        return self.clock() - self._start

    def _notify(self, record: AttemptRecord) -> None:
        if self.on_retry is None:
            return
        try:
            self.on_retry(record)
        except Exception:
            self.log.exception("on_retry hook failed", attempt=record.attempt)

    def _fail(self, outcome: RetryableFailure | TerminalFailure, reason: StopReason) -> ExecutionResult[Any]:
        self.history.append(AttemptRecord.of(self.attempt, outcome, elapsed=self.elapsed()))
        failure = RetryFailure(
            error=outcome.error,
            kind=outcome.kind,
            classification=(Classification.RETRYABLE if isinstance(outcome, RetryableFailure)
                            else Classification.TERMINAL),
            attempts=self.attempt,
            reason=reason,
            history=tuple(self.history),
            operation=self.op.label,
        )
        self.log.error("operation failed", reason=reason.value, attempts=self.attempt,
                       kind=outcome.kind.value, error=failure.message)
        return ExecutionResult.failed(failure)


def execute(
    operation: Operation[T] | Callable[[], T],
    policy: RetryPolicy | None = None,
    *,
    classifier: Classifier = default_classifier,
    sleep: Callable[[float], object] | None = None,
    clock: Callable[[], float] = time.monotonic,
    cancel: CancellationToken | None = None,
    on_retry: RetryHook | None = None,
    name: str | None = None,
) -> ExecutionResult[T]:
    """Run a synchronous operation with bounded retries.

    Never raises for operation failures: the returned ExecutionResult carries
    either the value or a RetryFailure wrapping the original exception.

    Args:
        operation: Operation or zero-argument callable, invoked fresh per attempt
        policy: Retry policy (default: built from CLOUDRETRY_RETRY_* settings)
        classifier: Maps exceptions to RETRYABLE/TERMINAL (default: ErrorKind table)
        sleep: Blocking wait between attempts (default: time.sleep, or the cancel
            token's interruptible wait). A custom sleep is not interrupted by
            the token; cancellation is then checked before and after it.
        clock: Monotonic clock used for deadlines and elapsed times
        cancel: Token that aborts a wait; the result then reports CANCELLED
        on_retry: Called with each AttemptRecord before waiting
        name: Label for logs and failure records

    Returns:
        ExecutionResult with value, or RetryFailure and attempt count
    """
    op = Operation.of(operation, name=name)
    loop = _RetryLoop(op, policy or RetryPolicy.from_settings(), clock, on_retry)
    while True:
        loop.begin()
        step = loop.step(attempt_once(op, classifier))
        if isinstance(step, ExecutionResult):
            return step
        if _wait(step, sleep, cancel):
            return loop.cancelled()


async def execute_async(
    operation: Operation[Awaitable[T]] | Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    classifier: Classifier = default_classifier,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    cancel: CancellationToken | None = None,
    on_retry: RetryHook | None = None,
    name: str | None = None,
) -> ExecutionResult[T]:
    """Async version of execute().

    Waits with a non-blocking sleep. Task cancellation raises CancelledError
    out of the wait or the attempt; a CancellationToken instead ends the run
    with a CANCELLED result once the current wait completes.
    """
    op = Operation.of(operation, name=name)
    loop = _RetryLoop(op, policy or RetryPolicy.from_settings(), clock, on_retry)
    while True:
        await checkpoint()
        loop.begin()
        step = loop.step(await attempt_once_async(op, classifier))
        if isinstance(step, ExecutionResult):
            return step
        if cancel is not None and cancel.cancelled:
            return loop.cancelled()
        await sleep(step)
        if cancel is not None and cancel.cancelled:
            return loop.cancelled()


class RetryExecutor:
    """Reusable call-site configuration for execute()/execute_async().

    Example:
        >>> dynamo = RetryExecutor(RetryPolicy(max_attempts=5, jitter=0.05))
        >>> result = dynamo.run(lambda: table.put_item(Item=item), name="orders:put")
        >>> get_item = dynamo.wrap(table.get_item)
        >>> get_item(Key={"id": "42"}).unwrap()
    """

    __slots__ = ("policy", "classifier", "on_retry", "_sleep", "_async_sleep", "_clock")

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        classifier: Classifier = default_classifier,
        on_retry: RetryHook | None = None,
        sleep: Callable[[float], object] | None = None,
        async_sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or RetryPolicy.from_settings()
        self.classifier = classifier
        self.on_retry = on_retry
        self._sleep, self._async_sleep, self._clock = sleep, async_sleep, clock

    def run(self, operation: Operation[T] | Callable[[], T], *, name: str | None = None,
            cancel: CancellationToken | None = None) -> ExecutionResult[T]:
        return execute(operation, self.policy, classifier=self.classifier, sleep=self._sleep,
                       clock=self._clock, cancel=cancel, on_retry=self.on_retry, name=name)

    async def arun(self, operation: Operation[Awaitable[T]] | Callable[[], Awaitable[T]], *,
                   name: str | None = None, cancel: CancellationToken | None = None) -> ExecutionResult[T]:
        return await execute_async(operation, self.policy, classifier=self.classifier, sleep=self._async_sleep,
                                   clock=self._clock, cancel=cancel, on_retry=self.on_retry, name=name)

    def wrap(self, func: Callable[..., Any], *, idempotent: bool = True) -> Callable[..., Any]:
        """Wrap func so each call runs under this executor and returns an ExecutionResult."""
        label = getattr(func, "__qualname__", None)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> ExecutionResult[Any]:
                op = Operation(functools.partial(func, *args, **kwargs), label, idempotent)
                return await self.arun(op)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> ExecutionResult[Any]:
            return self.run(Operation(functools.partial(func, *args, **kwargs), label, idempotent))
        return wrapper

    def __repr__(self) -> str:
        return f"RetryExecutor({self.policy!r}, classifier={self.classifier!r})"


def retrying(
    policy: RetryPolicy | None = None,
    *,
    classifier: Classifier = default_classifier,
    on_retry: RetryHook | None = None,
    idempotent: bool = True,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator: retry a sync or async function, returning its value or raising RetryError.

    Example:
        >>> @retrying(RetryPolicy(max_attempts=4, base_delay=0.2))
        ... def fetch_config(key: str) -> dict:
        ...     return ssm.get_parameter(Name=key)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        executor = RetryExecutor(policy, classifier=classifier, on_retry=on_retry)
        wrapped = executor.wrap(func, idempotent=idempotent)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return (await wrapped(*args, **kwargs)).unwrap()
            async_wrapper.executor = executor  # type: ignore[attr-defined]
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return wrapped(*args, **kwargs).unwrap()
        wrapper.executor = executor  # type: ignore[attr-defined]
        return wrapper

    return decorator
