"""Tests for ``lifeline.core.retry`` — fixed-delay retry policy."""

from __future__ import annotations

import pytest

from lifeline.core.errors import ConfigError, DatabaseConnectionError, QueryError
from lifeline.core.retry import ConstantBackoff, RetryContext, retry_call


class Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value: str = "ok"):
        self.failures = failures
        self.value = value
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return self.value


class TestConstantBackoff:
    def test_constant_delay(self):
        strategy = ConstantBackoff(max_retries=3, delay=2.5)
        assert [strategy.next_delay(n) for n in range(3)] == [2.5, 2.5, 2.5]

    def test_should_retry(self):
        strategy = ConstantBackoff(max_retries=2)
        assert strategy.should_retry(0)
        assert strategy.should_retry(1)
        assert not strategy.should_retry(2)

    def test_should_retry_checks_error(self):
        strategy = ConstantBackoff(max_retries=3)
        assert strategy.should_retry(0, DatabaseConnectionError("refused"))
        assert strategy.should_retry(0, TimeoutError("timed out"))
        assert not strategy.should_retry(0, ConfigError("bad port"))
        assert not strategy.should_retry(0, QueryError("syntax error"))


class TestRetryCall:
    def test_first_success_no_sleep(self):
        sleeps: list[float] = []
        assert retry_call(Flaky(0), ConstantBackoff(5, 1.0), sleep=sleeps.append) == "ok"
        assert sleeps == []

    def test_success_after_failures(self):
        sleeps: list[float] = []
        func = Flaky(2)
        assert retry_call(func, ConstantBackoff(5, 0.5), sleep=sleeps.append) == "ok"
        assert func.calls == 3
        assert sleeps == [0.5, 0.5]

    def test_exhausted_returns_none(self):
        sleeps: list[float] = []
        func = Flaky(100)
        assert retry_call(func, ConstantBackoff(max_retries=2, delay=5.0), sleep=sleeps.append) is None
        assert func.calls == 3
        assert sleeps == [5.0, 5.0]

    def test_zero_retries_single_attempt(self):
        func = Flaky(1)
        assert retry_call(func, ConstantBackoff(max_retries=0), sleep=lambda _: None) is None
        assert func.calls == 1

    def test_on_retry_hook(self):
        seen: list[tuple[int, str, float]] = []
        retry_call(
            Flaky(2),
            ConstantBackoff(max_retries=5, delay=1.0),
            on_retry=lambda n, e, d: seen.append((n, str(e), d)),
            sleep=lambda _: None,
        )
        assert seen == [(1, "attempt 1 failed", 1.0), (2, "attempt 2 failed", 1.0)]

    def test_non_retryable_error_raised_immediately(self):
        calls = []
        sleeps: list[float] = []

        def op():
            calls.append(1)
            raise ConfigError("psycopg is not installed")

        with pytest.raises(ConfigError, match="not installed"):
            retry_call(op, ConstantBackoff(max_retries=3, delay=0), sleep=sleeps.append)
        assert len(calls) == 1
        assert sleeps == []

    def test_transient_then_fatal_stops_at_fatal(self):
        errors = iter([DatabaseConnectionError("refused"), ValueError("bad dsn")])

        def op():
            raise next(errors)

        seen: list[int] = []
        with pytest.raises(ValueError):
            retry_call(
                op,
                ConstantBackoff(max_retries=5, delay=1.0),
                on_retry=lambda n, e, d: seen.append(n),
                sleep=lambda _: None,
            )
        assert seen == [1]


class TestRetryContext:
    def test_tracks_errors(self):
        ctx = RetryContext(strategy=ConstantBackoff(max_retries=1, delay=0), sleep=lambda _: None)
        assert ctx.run(Flaky(5)) is None
        assert ctx.attempts == 2
        assert ctx.retries == 1
        assert isinstance(ctx.last_error, ConnectionError)
        assert len(ctx.errors) == 2
