"""Retry policy configuration.

A RetryPolicy bounds how many times an operation runs and how long the
executor waits between runs. Invalid values fail at construction with a
pydantic ValidationError, before any attempt is made.

Example:
    >>> policy = RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2, max_delay=1.0)
    >>> list(policy.delays())
    [0.1, 0.2]
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .backoff import Backoff, ExponentialBackoff

if TYPE_CHECKING:
    from cloudretry.foundation.config import RetrySettings


class RetryPolicy(BaseModel):
    """Bounded exponential backoff policy.

    Delay before attempt n (n >= 2) is min(base_delay * multiplier^(n-2) + U(0, jitter), max_delay).

    Attributes:
        max_attempts: Upper bound on tries, including the first (>= 1)
        base_delay: Wait before the second attempt, in seconds (>= 0)
        multiplier: Growth factor per attempt (>= 1)
        max_delay: Cap on any single wait (>= base_delay)
        jitter: Upper bound of the uniform random offset added to each wait
        deadline: Optional total time budget; a wait that would overrun it is not started
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        validate_default=True,
        extra="forbid",
        revalidate_instances="never",
        json_schema_extra={
            "title": "Retry Policy",
            "description": "Bounded retry with capped exponential backoff",
            "examples": [{"max_attempts": 3, "base_delay": 0.1, "multiplier": 2.0, "max_delay": 1.0}],
        },
    )

    max_attempts: Annotated[int, Field(ge=1)] = 3
    base_delay: Annotated[float, Field(ge=0.0)] = 0.1
    multiplier: Annotated[float, Field(ge=1.0)] = 2.0
    max_delay: Annotated[float, Field(ge=0.0)] = 20.0
    jitter: Annotated[float, Field(ge=0.0)] = 0.0
    deadline: Annotated[float, Field(gt=0.0)] | None = None
    custom_backoff: Backoff | None = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="after")
    def _check_bounds(self) -> RetryPolicy:
        if self.max_delay < self.base_delay:
            raise ValueError(f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})")
        return self

    @property
    def retries_enabled(self) -> bool:
        return self.max_attempts > 1

    @property
    def backoff(self) -> Backoff:
        """Strategy used between attempts (custom if set, else exponential from the fields)."""
        if self.custom_backoff is not None:
            return self.custom_backoff
        return ExponentialBackoff(base=self.base_delay, multiplier=self.multiplier,
                                  max_delay=self.max_delay, jitter=self.jitter)

    def delay_before(self, attempt: int) -> float:
        """Wait before 1-based attempt number `attempt`. Zero for the first attempt."""
        if attempt <= 1:
            return 0.0
        return max(0.0, min(self.backoff.delay(attempt - 2), self.max_delay))

    def delays(self) -> Iterator[float]:
        """Jitter-free wait schedule for attempts 2..max_attempts."""
        if self.custom_backoff is not None:
            for n in range(2, self.max_attempts + 1):
                yield self.delay_before(n)
            return
        steady = ExponentialBackoff(base=self.base_delay, multiplier=self.multiplier, max_delay=self.max_delay)
        for n in range(2, self.max_attempts + 1):
            yield steady.raw(n - 2)

    def with_backoff(self, backoff: Backoff) -> RetryPolicy:
        """Return a copy using a custom strategy; max_delay still caps every wait."""
        return self.model_copy(update={"custom_backoff": backoff})

    @classmethod
    def from_settings(cls, settings: RetrySettings | None = None) -> RetryPolicy:
        """Build a policy from CLOUDRETRY_RETRY_* configuration."""
        if settings is None:
            from cloudretry.foundation.config import get_settings
            settings = get_settings().retry
        return cls(**settings.model_dump())


# Singleton for a single-shot policy
NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)

_PolicyAdapter: TypeAdapter[RetryPolicy] = TypeAdapter(RetryPolicy)


def validate_policy(data: RetryPolicy | dict[str, Any]) -> RetryPolicy:
    """Validate a dict (or pass through a policy) as a RetryPolicy. Raises ValidationError."""
    return _PolicyAdapter.validate_python(data)
