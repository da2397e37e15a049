"""Error kinds and retry classification for cloud API failures.

Maps raw exceptions (SDK errors, HTTP failures, builtin OS/network errors)
onto a vendor-neutral ErrorKind, then onto RETRYABLE/TERMINAL through a
single table. Nothing here depends on a specific SDK: vendor error shapes
are read by duck typing.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Self

if TYPE_CHECKING:
    from cloudretry.runtime.retry.outcome import RetryFailure


class ErrorKind(StrEnum):
    """Vendor-neutral error kinds used for retry decisions."""
    THROTTLED = "THROTTLED"
    UNAVAILABLE = "UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    INTERNAL = "INTERNAL"
    CONFLICT = "CONFLICT"
    ACCESS_DENIED = "ACCESS_DENIED"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    UNKNOWN = "UNKNOWN"


class Classification(StrEnum):
    RETRYABLE = "RETRYABLE"
    TERMINAL = "TERMINAL"


# UNKNOWN stays terminal: unrecognised failures never loop
DEFAULT_CLASSIFICATION: Mapping[ErrorKind, Classification] = MappingProxyType({
    ErrorKind.THROTTLED: Classification.RETRYABLE,
    ErrorKind.UNAVAILABLE: Classification.RETRYABLE,
    ErrorKind.TIMEOUT: Classification.RETRYABLE,
    ErrorKind.NETWORK: Classification.RETRYABLE,
    ErrorKind.INTERNAL: Classification.RETRYABLE,
    ErrorKind.CONFLICT: Classification.RETRYABLE,
    ErrorKind.ACCESS_DENIED: Classification.TERMINAL,
    ErrorKind.INVALID_REQUEST: Classification.TERMINAL,
    ErrorKind.NOT_FOUND: Classification.TERMINAL,
    ErrorKind.QUOTA_EXCEEDED: Classification.TERMINAL,
    ErrorKind.UNKNOWN: Classification.TERMINAL,
})

AWS_ERROR_CODES: Mapping[str, ErrorKind] = MappingProxyType({
    # Rate limiting
    "Throttling": ErrorKind.THROTTLED,
    "ThrottlingException": ErrorKind.THROTTLED,
    "ThrottledException": ErrorKind.THROTTLED,
    "TooManyRequestsException": ErrorKind.THROTTLED,
    "RequestLimitExceeded": ErrorKind.THROTTLED,
    "RequestThrottled": ErrorKind.THROTTLED,
    "RequestThrottledException": ErrorKind.THROTTLED,
    "SlowDown": ErrorKind.THROTTLED,
    "ProvisionedThroughputExceededException": ErrorKind.THROTTLED,
    "TransactionInProgressException": ErrorKind.THROTTLED,
    "BandwidthLimitExceeded": ErrorKind.THROTTLED,
    "EC2ThrottledException": ErrorKind.THROTTLED,
    # Transient unavailability
    "ServiceUnavailable": ErrorKind.UNAVAILABLE,
    "ServiceUnavailableException": ErrorKind.UNAVAILABLE,
    "ResourceUnavailableException": ErrorKind.UNAVAILABLE,
    "UnavailableException": ErrorKind.UNAVAILABLE,
    "ResourceInUseException": ErrorKind.UNAVAILABLE,
    "PriorRequestNotComplete": ErrorKind.UNAVAILABLE,
    # Server side
    "InternalError": ErrorKind.INTERNAL,
    "InternalFailure": ErrorKind.INTERNAL,
    "InternalServerError": ErrorKind.INTERNAL,
    "InternalServerException": ErrorKind.INTERNAL,
    "ServiceException": ErrorKind.INTERNAL,
    # Timeouts
    "RequestTimeout": ErrorKind.TIMEOUT,
    "RequestTimeoutException": ErrorKind.TIMEOUT,
    "IDPCommunicationError": ErrorKind.TIMEOUT,
    # Concurrency conflicts
    "ConflictException": ErrorKind.CONFLICT,
    "ConcurrentModificationException": ErrorKind.CONFLICT,
    "OperationAbortedException": ErrorKind.CONFLICT,
    "TransactionConflictException": ErrorKind.CONFLICT,
    # Authorization
    "AccessDenied": ErrorKind.ACCESS_DENIED,
    "AccessDeniedException": ErrorKind.ACCESS_DENIED,
    "UnauthorizedOperation": ErrorKind.ACCESS_DENIED,
    "UnrecognizedClientException": ErrorKind.ACCESS_DENIED,
    "InvalidClientTokenId": ErrorKind.ACCESS_DENIED,
    "ExpiredTokenException": ErrorKind.ACCESS_DENIED,
    "NotAuthorizedException": ErrorKind.ACCESS_DENIED,
    "InvalidSignatureException": ErrorKind.ACCESS_DENIED,
    "SignatureDoesNotMatch": ErrorKind.ACCESS_DENIED,
    # Malformed input
    "ValidationException": ErrorKind.INVALID_REQUEST,
    "ValidationError": ErrorKind.INVALID_REQUEST,
    "InvalidParameterException": ErrorKind.INVALID_REQUEST,
    "InvalidParameterValue": ErrorKind.INVALID_REQUEST,
    "InvalidParameterValueException": ErrorKind.INVALID_REQUEST,
    "InvalidRequestException": ErrorKind.INVALID_REQUEST,
    "MalformedQueryString": ErrorKind.INVALID_REQUEST,
    "MissingParameter": ErrorKind.INVALID_REQUEST,
    "SerializationException": ErrorKind.INVALID_REQUEST,
    "BadRequestException": ErrorKind.INVALID_REQUEST,
    # Absent resources
    "ResourceNotFoundException": ErrorKind.NOT_FOUND,
    "NotFoundException": ErrorKind.NOT_FOUND,
    "NoSuchKey": ErrorKind.NOT_FOUND,
    "NoSuchBucket": ErrorKind.NOT_FOUND,
    "NoSuchEntity": ErrorKind.NOT_FOUND,
    # Structural limits
    "ServiceQuotaExceededException": ErrorKind.QUOTA_EXCEEDED,
    "LimitExceededException": ErrorKind.QUOTA_EXCEEDED,
    "QuotaExceededException": ErrorKind.QUOTA_EXCEEDED,
})


class CloudError(Exception):
    """Exception carrying an explicit error kind.

    Raise from an operation body to classify a failure directly instead of
    relying on inference. Without an explicit kind, the code and then the
    status decide it.

    Attributes:
        kind: Vendor-neutral error kind
        code: Optional vendor error code (e.g. "ThrottlingException")
        status: Optional HTTP status code
    """

    __slots__ = ("kind", "code", "status")

    def __init__(self, message: str, kind: ErrorKind | None = None, *,
                 code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        if kind is None:
            kind = AWS_ERROR_CODES.get(code or "") or kind_from_status(status)
        self.kind, self.code, self.status = kind, code, status

    @classmethod
    def from_code(cls, code: str, message: str = "", *, status: int | None = None) -> Self:
        """Create from a vendor error code, resolving its kind via AWS_ERROR_CODES."""
        return cls(message or code, code=code, status=status)


class RetryError(Exception):
    """Raised by unwrap()/decorator layers when a retried operation ultimately failed."""

    __slots__ = ("failure",)

    def __init__(self, failure: RetryFailure) -> None:
        self.failure = failure
        super().__init__(failure.render())


# ─────────────────────────────────────────────────────────────────────────────
# Inference
# ─────────────────────────────────────────────────────────────────────────────


def kind_from_status(status: int | None) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    match status:
        case None: return ErrorKind.UNKNOWN
        case 429: return ErrorKind.THROTTLED
        case 408 | 504: return ErrorKind.TIMEOUT
        case 502 | 503: return ErrorKind.UNAVAILABLE
        case 401 | 403: return ErrorKind.ACCESS_DENIED
        case 404 | 410: return ErrorKind.NOT_FOUND
        case 409: return ErrorKind.CONFLICT
        case s if 500 <= s < 600: return ErrorKind.INTERNAL
        case s if 400 <= s < 500: return ErrorKind.INVALID_REQUEST
        case _: return ErrorKind.UNKNOWN


# Ordered keyword -> kind; first hit wins
_PATTERN_KINDS: dict[str, ErrorKind] = {
    "throttl": ErrorKind.THROTTLED,
    "rate exceeded": ErrorKind.THROTTLED,
    "too many requests": ErrorKind.THROTTLED,
    "slow down": ErrorKind.THROTTLED,
    "timeout": ErrorKind.TIMEOUT,
    "timed out": ErrorKind.TIMEOUT,
    "unavailable": ErrorKind.UNAVAILABLE,
    "connection": ErrorKind.NETWORK,
    "network": ErrorKind.NETWORK,
    "quota": ErrorKind.QUOTA_EXCEEDED,
    "denied": ErrorKind.ACCESS_DENIED,
    "unauthorized": ErrorKind.ACCESS_DENIED,
    "forbidden": ErrorKind.ACCESS_DENIED,
    "not found": ErrorKind.NOT_FOUND,
    "notfound": ErrorKind.NOT_FOUND,
    "conflict": ErrorKind.CONFLICT,
    "validation": ErrorKind.INVALID_REQUEST,
    "malformed": ErrorKind.INVALID_REQUEST,
}
_PATTERN_KEYS = tuple(_PATTERN_KINDS)

_BUILTIN_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (TimeoutError, ErrorKind.TIMEOUT),
    (ConnectionError, ErrorKind.NETWORK),
    (PermissionError, ErrorKind.ACCESS_DENIED),
    (FileNotFoundError, ErrorKind.NOT_FOUND),
    (LookupError, ErrorKind.NOT_FOUND),
    (ValueError, ErrorKind.INVALID_REQUEST),
    (TypeError, ErrorKind.INVALID_REQUEST),
)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorKind:
    """Cached keyword classification by exception signature."""
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_KINDS[pattern]
    return ErrorKind.UNKNOWN


def _vendor_code(exc: BaseException) -> str | None:
    # botocore.exceptions.ClientError keeps the code under response["Error"]["Code"]
    response = getattr(exc, "response", None)
    if isinstance(response, Mapping) and isinstance(err := response.get("Error"), Mapping):
        if isinstance(code := err.get("Code"), str):
            return code
    for attr in ("code", "error_code"):
        if isinstance(code := getattr(exc, attr, None), str):
            return code
    return None


def _http_status(exc: BaseException) -> int | None:
    for attr in ("status", "status_code"):
        if isinstance(status := getattr(exc, attr, None), int):
            return status
    response = getattr(exc, "response", None)
    if isinstance(response, Mapping) and isinstance(meta := response.get("ResponseMetadata"), Mapping):
        if isinstance(status := meta.get("HTTPStatusCode"), int):
            return status
    return None


def classify_exception(exc: BaseException) -> ErrorKind:
    """Infer the ErrorKind of an exception.

    Order: explicit kind attribute, vendor error code, HTTP status,
    builtin exception type, then keyword match on type name and message.
    """
    if isinstance(kind := getattr(exc, "kind", None), ErrorKind) and kind is not ErrorKind.UNKNOWN:
        return kind
    if (code := _vendor_code(exc)) and code in AWS_ERROR_CODES:
        return AWS_ERROR_CODES[code]
    if (status := _http_status(exc)) is not None and (kind := kind_from_status(status)) is not ErrorKind.UNKNOWN:
        return kind
    for exc_type, kind in _BUILTIN_KINDS:
        if isinstance(exc, exc_type):
            return kind
    return _classify_cached(f"{type(exc).__name__} {code or ''} {exc}")


# ─────────────────────────────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────────────────────────────


Classifier = Callable[[BaseException], Classification]


class ErrorClassifier:
    """Table-driven classifier mapping exceptions to RETRYABLE/TERMINAL.

    Example:
        >>> strict = ErrorClassifier(overrides={ErrorKind.CONFLICT: Classification.TERMINAL})
        >>> strict(CloudError("busy", ErrorKind.CONFLICT))
        <Classification.TERMINAL: 'TERMINAL'>
    """

    __slots__ = ("_table", "_infer")

    def __init__(
        self,
        table: Mapping[ErrorKind, Classification] = DEFAULT_CLASSIFICATION,
        *,
        overrides: Mapping[ErrorKind, Classification] | None = None,
        infer: Callable[[BaseException], ErrorKind] = classify_exception,
    ) -> None:
        self._table: Mapping[ErrorKind, Classification] = MappingProxyType({**table, **(overrides or {})})
        self._infer = infer

    @property
    def table(self) -> Mapping[ErrorKind, Classification]:
        return self._table

    def kind_of(self, exc: BaseException) -> ErrorKind:
        return self._infer(exc)

    def classify_kind(self, kind: ErrorKind) -> Classification:
        return self._table.get(kind, Classification.TERMINAL)

    def __call__(self, exc: BaseException) -> Classification:
        return self.classify_kind(self._infer(exc))

    def __repr__(self) -> str:
        retryable = sorted(k.value for k, c in self._table.items() if c is Classification.RETRYABLE)
        return f"ErrorClassifier(retryable={retryable})"


default_classifier = ErrorClassifier()
