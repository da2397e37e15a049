"""Error kinds, retry classification, and the exceptions raised by convenience layers.

- ErrorKind: Vendor-neutral error kinds (THROTTLED, ACCESS_DENIED, ...)
- Classification: RETRYABLE / TERMINAL
- ErrorClassifier: Table-driven exception -> Classification callable
- classify_exception: Infer an ErrorKind from SDK errors, HTTP statuses and builtins
- CloudError / RetryError: Raisable error types
"""

from .errors import (
    AWS_ERROR_CODES,
    DEFAULT_CLASSIFICATION,
    Classification,
    Classifier,
    CloudError,
    ErrorClassifier,
    ErrorKind,
    RetryError,
    classify_exception,
    default_classifier,
    kind_from_status,
)
from .types import JsonDict, JsonValue

__all__ = [
    # Kinds & classification
    "ErrorKind", "Classification", "Classifier", "ErrorClassifier", "default_classifier",
    "DEFAULT_CLASSIFICATION", "AWS_ERROR_CODES", "classify_exception", "kind_from_status",
    # Exceptions
    "CloudError", "RetryError",
    # Type aliases
    "JsonDict", "JsonValue",
]
