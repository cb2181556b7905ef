"""Unit tests for retry with backoff."""

from __future__ import annotations

import threading

import pytest

from composeremote.core.exceptions import (
    OperationCancelledError,
    RegistryAccessError,
    RegistryUnavailableError,
)
from composeremote.core.retry import NO_RETRY, RetryPolicy, call_with_retry


class Flaky:
    """Callable failing with queued errors before returning a value."""

    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def unavailable() -> RegistryUnavailableError:
    return RegistryUnavailableError("503", "registry.example/app:v1")


@pytest.mark.core
@pytest.mark.tier(0)
class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_delays_grow_exponentially(self) -> None:
        policy = RetryPolicy(attempts=4, initial_delay=0.5, multiplier=2.0)

        assert policy.delays() == [0.5, 1.0, 2.0]

    def test_delays_are_capped(self) -> None:
        policy = RetryPolicy(
            attempts=5, initial_delay=1.0, multiplier=10.0, max_delay=3
        )

        assert policy.delays() == [1.0, 3, 3, 3]

    def test_single_attempt_has_no_delays(self) -> None:
        assert NO_RETRY.delays() == []

    def test_invalid_attempts(self) -> None:
        with pytest.raises(ValueError, match="attempts"):
            RetryPolicy(attempts=0)

    def test_negative_delay(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            RetryPolicy(initial_delay=-1)


@pytest.mark.core
@pytest.mark.tier(0)
class TestCallWithRetry:
    """Tests for call_with_retry()."""

    policy = RetryPolicy(attempts=3, initial_delay=0.0)

    def test_success_first_try(self) -> None:
        fn = Flaky()

        assert call_with_retry(fn, self.policy) == "ok"
        assert fn.calls == 1

    def test_retries_unavailable(self) -> None:
        fn = Flaky(unavailable(), unavailable())

        assert call_with_retry(fn, self.policy) == "ok"
        assert fn.calls == 3

    def test_reraises_last_error(self) -> None:
        last = unavailable()
        fn = Flaky(unavailable(), unavailable(), last)

        with pytest.raises(RegistryUnavailableError) as exc_info:
            call_with_retry(fn, self.policy)

        assert exc_info.value is last
        assert fn.calls == 3

    def test_other_errors_not_retried(self) -> None:
        fn = Flaky(RegistryAccessError("denied", "registry.example/app:v1"))

        with pytest.raises(RegistryAccessError):
            call_with_retry(fn, self.policy)

        assert fn.calls == 1

    def test_logs_each_retry(self, caplog: pytest.LogCaptureFixture) -> None:
        fn = Flaky(unavailable())

        with caplog.at_level("WARNING", logger="composeremote.core.retry"):
            call_with_retry(fn, self.policy, description="fetch manifest")

        assert "fetch manifest failed (attempt 1/3)" in caplog.text

    def test_cancelled_before_first_attempt(self) -> None:
        cancel = threading.Event()
        cancel.set()
        fn = Flaky()

        with pytest.raises(OperationCancelledError):
            call_with_retry(fn, self.policy, cancel)

        assert fn.calls == 0

    def test_cancel_interrupts_backoff(self) -> None:
        """A set cancel signal ends the wait between attempts."""
        cancel = threading.Event()
        policy = RetryPolicy(attempts=2, initial_delay=60.0)

        def fn() -> str:
            cancel.set()
            raise unavailable()

        with pytest.raises(OperationCancelledError):
            call_with_retry(fn, policy, cancel)
