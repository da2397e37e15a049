"""Tests for error kind inference and retry classification."""

from __future__ import annotations

import pytest

from cloudretry.foundation.errors import (
    DEFAULT_CLASSIFICATION,
    Classification,
    CloudError,
    ErrorClassifier,
    ErrorKind,
    classify_exception,
    default_classifier,
    kind_from_status,
)
from cloudretry.tests.helpers import FakeClientError


class _HttpError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


# ═════════════════════════════════════════════════════════════════════════════
# Error Kind Inference
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(("code", "kind"), [
    ("ThrottlingException", ErrorKind.THROTTLED),
    ("ProvisionedThroughputExceededException", ErrorKind.THROTTLED),
    ("RequestLimitExceeded", ErrorKind.THROTTLED),
    ("ResourceUnavailableException", ErrorKind.UNAVAILABLE),
    ("ServiceUnavailable", ErrorKind.UNAVAILABLE),
    ("InternalServerError", ErrorKind.INTERNAL),
    ("ConflictException", ErrorKind.CONFLICT),
    ("AccessDeniedException", ErrorKind.ACCESS_DENIED),
    ("ValidationException", ErrorKind.INVALID_REQUEST),
    ("ResourceNotFoundException", ErrorKind.NOT_FOUND),
    ("ServiceQuotaExceededException", ErrorKind.QUOTA_EXCEEDED),
])
def test_botocore_style_codes(code: str, kind: ErrorKind) -> None:
    assert classify_exception(FakeClientError(code, status=400)) is kind


def test_unknown_code_falls_back_to_http_status() -> None:
    exc = FakeClientError("SomethingNewException", "whatever", status=503)
    assert classify_exception(exc) is ErrorKind.UNAVAILABLE


def test_explicit_kind_wins() -> None:
    exc = CloudError("ThrottlingException but actually missing", ErrorKind.NOT_FOUND, code="ThrottlingException")
    assert classify_exception(exc) is ErrorKind.NOT_FOUND


def test_from_code_resolves_kind() -> None:
    exc = CloudError.from_code("ThrottlingException", "Rate exceeded")
    assert exc.kind is ErrorKind.THROTTLED
    assert exc.code == "ThrottlingException"
    assert str(exc) == "Rate exceeded"
    assert CloudError.from_code("Mystery", status=429).kind is ErrorKind.THROTTLED
    assert CloudError.from_code("Mystery").kind is ErrorKind.UNKNOWN


def test_code_or_status_without_kind() -> None:
    by_code = CloudError("Rate exceeded", code="ThrottlingException")
    by_status = CloudError("busy", status=503)

    assert by_code.kind is ErrorKind.THROTTLED
    assert classify_exception(by_code) is ErrorKind.THROTTLED
    assert classify_exception(by_status) is ErrorKind.UNAVAILABLE
    assert default_classifier(by_status) is Classification.RETRYABLE


def test_unknown_cloud_error_keeps_inferring() -> None:
    assert CloudError("boom").kind is ErrorKind.UNKNOWN
    assert classify_exception(CloudError("request was throttled")) is ErrorKind.THROTTLED


@pytest.mark.parametrize(("status", "kind"), [
    (429, ErrorKind.THROTTLED),
    (408, ErrorKind.TIMEOUT),
    (504, ErrorKind.TIMEOUT),
    (502, ErrorKind.UNAVAILABLE),
    (503, ErrorKind.UNAVAILABLE),
    (500, ErrorKind.INTERNAL),
    (401, ErrorKind.ACCESS_DENIED),
    (403, ErrorKind.ACCESS_DENIED),
    (404, ErrorKind.NOT_FOUND),
    (409, ErrorKind.CONFLICT),
    (400, ErrorKind.INVALID_REQUEST),
    (200, ErrorKind.UNKNOWN),
    (None, ErrorKind.UNKNOWN),
])
def test_kind_from_status(status: int | None, kind: ErrorKind) -> None:
    assert kind_from_status(status) is kind


def test_status_code_attribute() -> None:
    assert classify_exception(_HttpError(429)) is ErrorKind.THROTTLED


@pytest.mark.parametrize(("exc", "kind"), [
    (TimeoutError("read timed out"), ErrorKind.TIMEOUT),
    (ConnectionResetError("reset by peer"), ErrorKind.NETWORK),
    (PermissionError("nope"), ErrorKind.ACCESS_DENIED),
    (FileNotFoundError("missing.json"), ErrorKind.NOT_FOUND),
    (KeyError("id"), ErrorKind.NOT_FOUND),
    (ValueError("bad arn"), ErrorKind.INVALID_REQUEST),
])
def test_builtin_exceptions(exc: Exception, kind: ErrorKind) -> None:
    assert classify_exception(exc) is kind


@pytest.mark.parametrize(("message", "kind"), [
    ("Request was throttled by upstream", ErrorKind.THROTTLED),
    ("Too Many Requests", ErrorKind.THROTTLED),
    ("service temporarily unavailable", ErrorKind.UNAVAILABLE),
    ("User is denied access", ErrorKind.ACCESS_DENIED),
    ("boom", ErrorKind.UNKNOWN),
])
def test_keyword_fallback(message: str, kind: ErrorKind) -> None:
    assert classify_exception(RuntimeError(message)) is kind


# ═════════════════════════════════════════════════════════════════════════════
# Classification
# ═════════════════════════════════════════════════════════════════════════════


def test_default_table_covers_every_kind() -> None:
    assert set(DEFAULT_CLASSIFICATION) == set(ErrorKind)
    assert DEFAULT_CLASSIFICATION[ErrorKind.UNKNOWN] is Classification.TERMINAL


@pytest.mark.parametrize(("kind", "expected"), [
    (ErrorKind.THROTTLED, Classification.RETRYABLE),
    (ErrorKind.UNAVAILABLE, Classification.RETRYABLE),
    (ErrorKind.TIMEOUT, Classification.RETRYABLE),
    (ErrorKind.NETWORK, Classification.RETRYABLE),
    (ErrorKind.ACCESS_DENIED, Classification.TERMINAL),
    (ErrorKind.INVALID_REQUEST, Classification.TERMINAL),
    (ErrorKind.NOT_FOUND, Classification.TERMINAL),
    (ErrorKind.QUOTA_EXCEEDED, Classification.TERMINAL),
])
def test_default_classifier(kind: ErrorKind, expected: Classification) -> None:
    assert default_classifier(CloudError("x", kind)) is expected


def test_overrides_replace_single_kinds() -> None:
    strict = ErrorClassifier(overrides={ErrorKind.CONFLICT: Classification.TERMINAL})
    assert strict(CloudError("busy", ErrorKind.CONFLICT)) is Classification.TERMINAL
    assert strict(CloudError("slow", ErrorKind.THROTTLED)) is Classification.RETRYABLE
    assert default_classifier(CloudError("busy", ErrorKind.CONFLICT)) is Classification.RETRYABLE


def test_missing_kind_in_custom_table_is_terminal() -> None:
    only_throttling = ErrorClassifier({ErrorKind.THROTTLED: Classification.RETRYABLE})
    assert only_throttling(TimeoutError()) is Classification.TERMINAL
    assert only_throttling(FakeClientError("ThrottlingException")) is Classification.RETRYABLE


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        default_classifier.table[ErrorKind.UNKNOWN] = Classification.RETRYABLE  # type: ignore[index]


def test_public_names_resolve() -> None:
    import cloudretry.foundation.errors as errors

    assert all(hasattr(errors, name) for name in errors.__all__)
    assert {"JsonDict", "JsonValue"} <= set(errors.__all__)
    assert not hasattr(errors, "JsonMapping")
