"""Fixed-delay retry policy for reconnect attempts.

Only the PostgreSQL adapter's ``connect()`` retries.  Errors that are not
retryable (see :func:`lifeline.core.errors.is_retryable`), such as a
``ConfigError``, propagate on the first occurrence.

Example:
    >>> from lifeline.core.retry import ConstantBackoff, retry_call
    >>> strategy = ConstantBackoff(max_retries=5, delay=5.0)
    >>> pool = retry_call(open_pool, strategy)   # None after 6 failed attempts
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeVar

from lifeline.core.errors import is_retryable

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class ConstantBackoff:
    """Constant delay between retries.

    Attributes:
        max_retries: Retries allowed after the first attempt
        delay: Seconds slept before each retry
    """

    max_retries: int = 5
    delay: float = 5.0

    def next_delay(self, attempt: int) -> float:
        """Return constant delay."""
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Whether to retry after *error*.

        ``attempt`` is the number of retries already made.
        """
        if error is not None and not is_retryable(error):
            return False
        return attempt < self.max_retries


@dataclass
class RetryContext:
    """Retry state for a single operation.

    ``retries`` counts sleeps taken, ``errors`` keeps every failure with the
    time it happened.
    """

    strategy: ConstantBackoff
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Callable[[float], None] = time.sleep
    attempts: int = field(default=0, init=False)
    retries: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    errors: list[tuple[int, Exception, datetime]] = field(default_factory=list, init=False)

    def run(self, func: Callable[[], T]) -> T | None:
        """Call *func* until it succeeds or the strategy gives up.

        Returns the first successful result, or ``None`` once retries are
        exhausted.  The last failure stays available as ``last_error``.

        Raises:
            Exception: The first error that is not retryable, unchanged.
        """
        while True:
            self.attempts += 1
            try:
                return func()
            except Exception as e:
                self.last_error = e
                self.errors.append((self.retries, e, utcnow()))

                if not self.strategy.should_retry(self.retries, e):
                    if not is_retryable(e):
                        raise
                    return None

                delay = self.strategy.next_delay(self.retries)
                self.retries += 1

                if self.on_retry:
                    self.on_retry(self.retries, e, delay)

                self.sleep(delay)


def retry_call(
    func: Callable[[], T],
    strategy: ConstantBackoff,
    *,
    on_retry: Callable[[int, Exception, float], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T | None:
    """Run *func* under *strategy*; ``None`` means every attempt failed."""
    return RetryContext(strategy=strategy, on_retry=on_retry, sleep=sleep).run(func)


__all__ = [
    "ConstantBackoff",
    "RetryContext",
    "retry_call",
]
