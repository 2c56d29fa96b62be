"""Bounded retry of a unit of work while its failures classify as retryable."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from broker_controller.core.config import Settings
from broker_controller.core.exceptions import is_conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff: ``duration * factor**n`` plus up to ``jitter`` of it."""

    steps: int = 4
    duration: float = 0.01
    factor: float = 5.0
    jitter: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "Backoff":
        return cls(
            steps=settings.conflict_retry_steps,
            duration=settings.conflict_retry_duration_sec,
            factor=settings.conflict_retry_factor,
            jitter=settings.conflict_retry_jitter,
        )

    def delay(self, attempt: int) -> float:
        base = self.duration * (self.factor ** (attempt - 1))
        if self.jitter > 0:
            base += random.uniform(0, self.jitter * base)
        return base


def retry_on(
    work: Callable[[], T],
    retryable: Callable[[BaseException], bool],
    backoff: Backoff = Backoff(),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run *work*, re-running it while it raises a *retryable* error.

    Non-retryable errors propagate untouched. When the attempts are exhausted
    the last retryable error is raised.
    """
    for attempt in range(1, backoff.steps + 1):
        try:
            return work()
        except Exception as exc:
            if not retryable(exc) or attempt == backoff.steps:
                raise
            wait = backoff.delay(attempt)
            logger.debug("retryable failure (attempt %d/%d), retrying in %.3fs: %s",
                         attempt, backoff.steps, wait, exc)
            sleep(wait)
    raise AssertionError("unreachable")  # pragma: no cover


def retry_on_conflict(
    work: Callable[[], T],
    backoff: Backoff = Backoff(),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    return retry_on(work, is_conflict, backoff, sleep)
