"""Shared JSON-ish type aliases for log context and serialized records."""

from __future__ import annotations

from typing import Any, Union

JsonValue = Union[str, int, float, bool, None, list[Any], dict[str, Any]]  # Any for recursive slots
JsonDict = dict[str, Any]
