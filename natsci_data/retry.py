"""
Bounded retry with backoff over an explicit attempt result type.

The attempted operation never signals "try again" by raising; it returns an
Attempt that says whether it succeeded, failed in a way worth retrying, or
failed permanently. ``retry_with_backoff()`` applies the same policy to any
such operation.

Usage::

    def attempt(n):
        ...
        return Attempt.retryable("HTTP 503")

    outcome = retry_with_backoff(attempt, max_attempts=3, delay=2.0)
    if outcome.ok:
        ...
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class Attempt:
    """Result of one try of an operation."""

    status: AttemptStatus
    value: Any = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value=None):
        return cls(AttemptStatus.SUCCESS, value=value)

    @classmethod
    def retryable(cls, reason, value=None):
        return cls(AttemptStatus.RETRYABLE, value=value, reason=reason)

    @classmethod
    def permanent(cls, reason):
        return cls(AttemptStatus.PERMANENT, reason=reason)

    @property
    def ok(self):
        return self.status == AttemptStatus.SUCCESS


@dataclass(frozen=True)
class RetryOutcome:
    """Final attempt plus how many attempts were made."""

    last: Attempt
    attempts: int

    @property
    def ok(self):
        return self.last.ok

    @property
    def exhausted(self):
        """True when every allowed attempt failed retryably."""
        return self.last.status == AttemptStatus.RETRYABLE


def backoff_delays(max_attempts, delay, backoff=1.0):
    """Sleep durations between consecutive attempts (``max_attempts - 1`` values)."""
    return [delay * (backoff ** i) for i in range(max(0, max_attempts - 1))]


def retry_with_backoff(
    fn: Callable[[int], Attempt],
    max_attempts: int = 3,
    delay: float = 2.0,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, Attempt, float], None]] = None,
) -> RetryOutcome:
    """Call *fn* until it succeeds, fails permanently, or attempts run out.

    Parameters
    ----------
    fn : callable
        Receives the 1-based attempt number and returns an Attempt.
    max_attempts : int
        Upper bound on calls to *fn* (>= 1).
    delay : float
        Seconds to wait before the second attempt.
    backoff : float
        Multiplier applied to the delay after each retry; 1.0 keeps it fixed.
    sleep : callable
        Injected for tests.
    on_retry : callable, optional
        Called as ``on_retry(attempt_number, attempt, wait_seconds)`` before
        each sleep.

    Returns
    -------
    RetryOutcome
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    delays = backoff_delays(max_attempts, delay, backoff)
    attempt = None
    for n in range(1, max_attempts + 1):
        attempt = fn(n)
        if attempt.status != AttemptStatus.RETRYABLE:
            return RetryOutcome(last=attempt, attempts=n)
        if n < max_attempts:
            wait = delays[n - 1]
            if on_retry is not None:
                on_retry(n, attempt, wait)
            if wait > 0:
                sleep(wait)

    return RetryOutcome(last=attempt, attempts=max_attempts)
