"""Backoff strategies for retry policies.

Provides pluggable delay calculation between attempts:
- ExponentialBackoff: min(base * multiplier^n + U(0, jitter), max_delay)
- LinearBackoff: Linear growth with cap
- ConstantBackoff: Fixed delay
- DecorrelatedJitter: AWS-style decorrelated jitter (spreads many concurrent retriers)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Protocol for backoff delay calculation.

    Retry indexes are 0-based: the wait before the second attempt is delay(0).
    """

    def delay(self, attempt: int) -> float:
        """Delay in seconds before retry number `attempt` (0-indexed)."""
        ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff with additive jitter and a hard cap.

    Delay = min(base * multiplier^attempt + U(0, jitter), max_delay)

    Attributes:
        base: Initial delay in seconds
        multiplier: Growth factor per retry (>= 1)
        max_delay: Cap on any single delay in seconds
        jitter: Upper bound of the uniform random offset in seconds (0 = deterministic)
        rng: Random source; inject a seeded random.Random for reproducible schedules
    """

    base: float = 0.1
    multiplier: float = 2.0
    max_delay: float = 20.0
    jitter: float = 0.0
    rng: random.Random | None = field(default=None, compare=False, repr=False)

    def raw(self, attempt: int) -> float:
        """Jitter-free, capped delay for retry `attempt`."""
        try:
            grown = self.base * (self.multiplier ** attempt)
        except OverflowError:
            return self.max_delay if self.base else 0.0
        return min(grown, self.max_delay)

    def delay(self, attempt: int) -> float:
        if not self.jitter:
            return self.raw(attempt)
        offset = (self.rng or random).uniform(0.0, self.jitter)
        return min(self.raw(attempt) + offset, self.max_delay)


@dataclass(frozen=True, slots=True)
class LinearBackoff:
    """Linear backoff with cap. Delay = min(base + increment * attempt, max_delay)"""

    base: float = 1.0
    increment: float = 1.0
    max_delay: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(self.base + (self.increment * attempt), self.max_delay)


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Fixed delay between retries, for APIs with a known cooldown."""

    delay_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.delay_seconds


@dataclass(frozen=True, slots=True)
class DecorrelatedJitter:
    """AWS-style decorrelated jitter backoff.

    Each delay is drawn from [base, previous * 3] and capped at max_delay.
    Stateless: the chain is recomputed from the start for each attempt.

    Reference: https://aws.amazon.com/blogs/architecture/exponential-backoff-and-jitter/
    """

    base: float = 0.1
    max_delay: float = 20.0
    rng: random.Random | None = field(default=None, compare=False, repr=False)

    def delay(self, attempt: int) -> float:
        source = self.rng or random
        prev = self.base
        for _ in range(attempt + 1):
            prev = min(self.max_delay, source.uniform(self.base, prev * 3))
        return prev
