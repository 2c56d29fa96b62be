"""Retry-on-conflict combinator."""

import pytest

from broker_controller.core.exceptions import ConflictError, ControllerError
from broker_controller.core.retry import Backoff, retry_on_conflict


class Flaky:
    def __init__(self, failures, exc=ConflictError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc("try again")
        return "done"


class TestRetryOnConflict:
    def test_retries_until_success(self) -> None:
        work, sleeps = Flaky(2), []

        assert retry_on_conflict(work, Backoff(), sleeps.append) == "done"
        assert work.calls == 3
        assert len(sleeps) == 2

    def test_gives_up_after_steps(self) -> None:
        work, sleeps = Flaky(10), []

        with pytest.raises(ConflictError):
            retry_on_conflict(work, Backoff(steps=4), sleeps.append)
        assert work.calls == 4
        assert len(sleeps) == 3

    def test_other_errors_are_not_retried(self) -> None:
        work = Flaky(1, ControllerError)

        with pytest.raises(ControllerError):
            retry_on_conflict(work, Backoff(), lambda _: None)
        assert work.calls == 1


class TestBackoff:
    def test_exponential_without_jitter(self) -> None:
        b = Backoff(duration=0.01, factor=5.0, jitter=0)
        assert [round(b.delay(n), 4) for n in (1, 2, 3)] == [0.01, 0.05, 0.25]

    def test_jitter_bounds(self) -> None:
        b = Backoff(duration=0.01, factor=5.0, jitter=0.1)
        for _ in range(20):
            assert 0.0499 <= b.delay(2) <= 0.0551

    def test_from_settings(self, settings) -> None:
        assert Backoff.from_settings(settings) == Backoff(steps=4, duration=0.01, factor=5.0, jitter=0.1)
