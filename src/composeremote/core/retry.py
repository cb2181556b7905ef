"""Bounded retry with exponential backoff for resolver calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from composeremote.core.exceptions import (
    OperationCancelledError,
    RegistryUnavailableError,
)


if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How often and how patiently to retry transient registry failures.

    Attributes:
        attempts: Total number of attempts, including the first one.
        initial_delay: Seconds to wait before the second attempt.
        multiplier: Factor applied to the delay after each failure.
        max_delay: Upper bound for a single wait, in seconds.
    """

    attempts: int = 3
    initial_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 5.0

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.attempts < 1:
            raise ValueError("RetryPolicy.attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("RetryPolicy delays cannot be negative")

    def delays(self) -> list[float]:
        """Wait times between consecutive attempts."""
        result = []
        delay = self.initial_delay
        for _ in range(self.attempts - 1):
            result.append(min(delay, self.max_delay))
            delay *= self.multiplier
        return result


NO_RETRY = RetryPolicy(attempts=1)


def _wait(delay: float, cancel: threading.Event | None) -> None:
    """Sleep for delay seconds, waking early if cancel is set."""
    if cancel is None:
        time.sleep(delay)
        return
    if cancel.wait(delay):
        raise OperationCancelledError()


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    cancel: threading.Event | None = None,
    *,
    description: str = "registry request",
) -> T:
    """Call fn, retrying RegistryUnavailableError according to policy.

    Any other exception propagates immediately. When the final attempt
    fails, its error is re-raised unchanged.

    Args:
        fn: Zero-argument callable performing one attempt.
        policy: Retry policy.
        cancel: Optional cancellation signal, checked before every attempt
            and while waiting.
        description: Label used in log messages.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        OperationCancelledError: If cancel is set before or between attempts.
    """
    delays = policy.delays()
    attempt = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError()
        attempt += 1
        try:
            return fn()
        except RegistryUnavailableError as e:
            if attempt >= policy.attempts:
                raise
            delay = delays[attempt - 1]
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                description,
                attempt,
                policy.attempts,
                e,
                delay,
            )
            _wait(delay, cancel)
