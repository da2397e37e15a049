"""cloudretry - bounded retry with backoff for transient cloud-API failures.

Wraps one remote call, classifies each failure as retryable (throttling,
temporary unavailability, network blips) or terminal (access denied,
malformed request, missing resource), waits with capped exponential backoff
and optional jitter between attempts, and returns a single ExecutionResult.

Quick Start:
    >>> from cloudretry import RetryPolicy, execute
    >>>
    >>> policy = RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2, max_delay=1.0, jitter=0.05)
    >>> result = execute(lambda: kinesis.put_record(**record), policy, name="kinesis:put_record")
    >>> result.match(
    ...     ok=lambda resp: resp["SequenceNumber"],
    ...     err=lambda failure: log_failure(failure.render()),
    ... )

Async:
    >>> result = await execute_async(lambda: session.get(url), policy)

Decorator:
    >>> @retrying(policy)
    ... def load_manifest(bucket: str, key: str) -> bytes:
    ...     return s3.get_object(Bucket=bucket, Key=key)["Body"].read()
"""

from cloudretry.foundation.config import CloudRetrySettings, clear_settings_cache, get_settings
from cloudretry.foundation.errors import (
    AWS_ERROR_CODES,
    DEFAULT_CLASSIFICATION,
    Classification,
    CloudError,
    ErrorClassifier,
    ErrorKind,
    RetryError,
    classify_exception,
    default_classifier,
    kind_from_status,
)
from cloudretry.runtime.concurrency import CancellationToken, CancelScope, checkpoint
from cloudretry.runtime.observability import configure_from_settings, configure_logging, get_logger
from cloudretry.runtime.retry import (
    NO_RETRY,
    AttemptRecord,
    Backoff,
    ConstantBackoff,
    DecorrelatedJitter,
    ExecutionResult,
    ExponentialBackoff,
    LinearBackoff,
    Operation,
    RetryExecutor,
    RetryFailure,
    RetryPolicy,
    StopReason,
    execute,
    execute_async,
    retrying,
    validate_policy,
)

__version__ = "0.1.0"

__all__ = [
    # Execution
    "execute", "execute_async", "RetryExecutor", "retrying", "Operation",
    # Results
    "ExecutionResult", "RetryFailure", "AttemptRecord", "StopReason",
    # Policy & backoff
    "RetryPolicy", "NO_RETRY", "validate_policy",
    "Backoff", "ExponentialBackoff", "LinearBackoff", "ConstantBackoff", "DecorrelatedJitter",
    # Classification
    "ErrorKind", "Classification", "ErrorClassifier", "default_classifier", "classify_exception",
    "kind_from_status", "DEFAULT_CLASSIFICATION", "AWS_ERROR_CODES",
    # Errors
    "CloudError", "RetryError",
    # Cancellation
    "CancellationToken", "CancelScope", "checkpoint",
    # Config & logging
    "CloudRetrySettings", "get_settings", "clear_settings_cache",
    "configure_logging", "configure_from_settings", "get_logger",
]
