"""Bounded retry with backoff for transient cloud-API failures.

Example:
    >>> from cloudretry.runtime.retry import RetryPolicy, execute
    >>> from cloudretry.foundation.errors import CloudError, ErrorKind
    >>>
    >>> def put_record() -> str:
    ...     raise CloudError("Rate exceeded", ErrorKind.THROTTLED, code="ThrottlingException")
    >>>
    >>> result = execute(put_record, RetryPolicy(max_attempts=3, base_delay=0.1, max_delay=1.0))
    >>> result.is_err(), result.attempts
    (True, 3)
"""

from .backoff import (
    Backoff,
    ConstantBackoff,
    DecorrelatedJitter,
    ExponentialBackoff,
    LinearBackoff,
)
from .executor import RetryExecutor, RetryHook, execute, execute_async, retrying
from .outcome import (
    AttemptOutcome,
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
    classify_failure,
)
from .policy import NO_RETRY, RetryPolicy, validate_policy

__all__ = [
    # Backoff strategies
    "Backoff", "ExponentialBackoff", "LinearBackoff", "ConstantBackoff", "DecorrelatedJitter",
    # Policy
    "RetryPolicy", "NO_RETRY", "validate_policy",
    # Outcomes
    "Operation", "AttemptOutcome", "Success", "RetryableFailure", "TerminalFailure",
    "attempt_once", "attempt_once_async", "classify_failure",
    "AttemptRecord", "StopReason", "RetryFailure", "ExecutionResult",
    # Execution
    "execute", "execute_async", "RetryExecutor", "RetryHook", "retrying",
]
