"""
Tests for natsci_data/retry.py.

The retry combinator decides how many times a download is attempted and
how long the Fetcher waits in between; an off-by-one here either hammers
a failing server or gives up early.
"""

import pytest

from natsci_data.retry import (
    Attempt,
    AttemptStatus,
    backoff_delays,
    retry_with_backoff,
)


def scripted(*attempts):
    """Attempt function returning *attempts* in order and recording calls."""
    calls = []

    def fn(n):
        calls.append(n)
        return attempts[min(n, len(attempts)) - 1]

    fn.calls = calls
    return fn


class TestRetryWithBackoff:

    def test_first_success_stops(self):
        fn = scripted(Attempt.success("ok"))
        sleeps = []
        outcome = retry_with_backoff(fn, max_attempts=3, delay=2.0, sleep=sleeps.append)
        assert outcome.ok
        assert outcome.attempts == 1
        assert outcome.last.value == "ok"
        assert sleeps == []

    def test_retryable_then_success(self):
        fn = scripted(Attempt.retryable("503"), Attempt.success(1))
        sleeps = []
        outcome = retry_with_backoff(fn, max_attempts=3, delay=2.0, sleep=sleeps.append)
        assert outcome.ok
        assert outcome.attempts == 2
        assert sleeps == [2.0]

    def test_exhausts_after_max_attempts(self):
        """Three retryable failures make exactly three calls and two sleeps."""
        fn = scripted(Attempt.retryable("404"))
        sleeps = []
        outcome = retry_with_backoff(fn, max_attempts=3, delay=2.0, sleep=sleeps.append)
        assert not outcome.ok
        assert outcome.exhausted
        assert outcome.attempts == 3
        assert fn.calls == [1, 2, 3]
        assert sleeps == [2.0, 2.0]

    def test_permanent_failure_not_retried(self):
        fn = scripted(Attempt.permanent("bad URL"))
        outcome = retry_with_backoff(fn, max_attempts=5, delay=0, sleep=lambda s: None)
        assert outcome.attempts == 1
        assert not outcome.exhausted
        assert outcome.last.status == AttemptStatus.PERMANENT

    def test_zero_delay_never_sleeps(self):
        fn = scripted(Attempt.retryable("x"))
        sleeps = []
        retry_with_backoff(fn, max_attempts=4, delay=0, sleep=sleeps.append)
        assert sleeps == []

    def test_on_retry_called_between_attempts(self):
        fn = scripted(Attempt.retryable("a"), Attempt.retryable("b"), Attempt.success())
        seen = []
        retry_with_backoff(
            fn, max_attempts=3, delay=1.0, sleep=lambda s: None,
            on_retry=lambda n, attempt, wait: seen.append((n, attempt.reason, wait)),
        )
        assert seen == [(1, "a", 1.0), (2, "b", 1.0)]

    def test_single_attempt(self):
        fn = scripted(Attempt.retryable("x"))
        outcome = retry_with_backoff(fn, max_attempts=1, sleep=lambda s: None)
        assert outcome.attempts == 1
        assert outcome.exhausted

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            retry_with_backoff(scripted(Attempt.success()), max_attempts=0)


class TestBackoffDelays:

    def test_fixed_delay(self):
        assert backoff_delays(3, 2.0) == [2.0, 2.0]

    def test_exponential_delay(self):
        assert backoff_delays(4, 1.0, backoff=2.0) == [1.0, 2.0, 4.0]

    def test_no_delays_for_single_attempt(self):
        assert backoff_delays(1, 5.0) == []
