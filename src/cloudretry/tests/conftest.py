"""Shared fixtures."""

from __future__ import annotations

import pytest

from cloudretry.foundation.config import clear_settings_cache
from cloudretry.runtime.observability import reset_logging
from cloudretry.tests.helpers import FakeClientError, FakeClock


@pytest.fixture(autouse=True)
def clean_globals() -> object:
    """Reset logging and settings caches around each test."""
    reset_logging()
    clear_settings_cache()
    yield
    reset_logging()
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def throttled() -> FakeClientError:
    return FakeClientError("ThrottlingException", "Rate exceeded", status=400)


@pytest.fixture
def denied() -> FakeClientError:
    return FakeClientError("AccessDeniedException", "User is not authorized", status=403)
