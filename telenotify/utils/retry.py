"""Exponential backoff policy for rate-limited Bot API calls."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

Delay = Union[timedelta, int, float]

_ONE_MS = timedelta(milliseconds=1)


def _as_delay(value: Optional[Delay], name: str) -> timedelta:
    if value is None:
        raise ValueError(f"{name} is required")
    if not isinstance(value, timedelta):
        value = timedelta(seconds=float(value))
    if value < timedelta(0):
        raise ValueError(f"{name} must be non-negative")
    return value


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry settings shared by every send of a publisher.

    ``attempt`` numbers passed to the methods count retries, not calls:
    attempt ``0`` is the first retry and already waits ``base_delay``.
    """

    max_retries: int
    base_delay: timedelta
    multiplier: float
    max_delay: timedelta

    def __post_init__(self) -> None:
        if self.max_retries is None or self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.multiplier is None or self.multiplier <= 0:
            raise ValueError("multiplier must be positive")
        object.__setattr__(self, "base_delay", _as_delay(self.base_delay, "base_delay"))
        object.__setattr__(self, "max_delay", _as_delay(self.max_delay, "max_delay"))
        object.__setattr__(self, "multiplier", float(self.multiplier))

    def compute_backoff(self, attempt: int) -> timedelta:
        """Return ``base_delay * multiplier ** attempt`` capped at ``max_delay``."""

        if attempt < 0:
            raise ValueError("attempt cannot be negative")
        if attempt == 0:
            return self.base_delay
        max_ms = self.max_delay / _ONE_MS
        try:
            delay_ms = (self.base_delay / _ONE_MS) * self.multiplier**attempt
        except OverflowError:
            return self.max_delay
        if delay_ms >= max_ms:
            return self.max_delay
        # Half-up rounding to whole milliseconds.
        return min(timedelta(milliseconds=int(delay_ms + 0.5)), self.max_delay)

    def for_429(self, attempt: int, retry_after: Optional[int] = None) -> timedelta:
        """Return the wait after a rate-limit reply.

        A positive server ``retry_after`` hint wins over the computed backoff
        but is still capped at ``max_delay``.
        """

        if attempt < 0:
            raise ValueError("attempt cannot be negative")
        if retry_after is not None and retry_after < 0:
            raise ValueError("retry_after cannot be negative")
        if retry_after:
            return min(timedelta(seconds=retry_after), self.max_delay)
        return self.compute_backoff(attempt)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries

    @classmethod
    def default(cls) -> "RetryPolicy":
        return cls(2, timedelta(seconds=1), 2.0, timedelta(seconds=30))

    @classmethod
    def conservative(cls) -> "RetryPolicy":
        return cls(5, timedelta(seconds=2), 1.5, timedelta(seconds=60))

    @classmethod
    def aggressive(cls) -> "RetryPolicy":
        return cls(1, timedelta(milliseconds=500), 2.0, timedelta(seconds=5))

    @classmethod
    def preset(cls, name: str) -> "RetryPolicy":
        """Return the named preset (``default``, ``conservative``, ``aggressive``)."""

        key = (name or "default").strip().lower()
        factory = {
            "default": cls.default,
            "conservative": cls.conservative,
            "aggressive": cls.aggressive,
        }.get(key)
        if factory is None:
            raise ValueError(f"Unknown retry preset: {name!r}")
        return factory()


__all__ = ["RetryPolicy"]
