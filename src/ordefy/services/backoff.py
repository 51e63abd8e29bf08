"""Exponential backoff with bounded jitter for webhook job retries."""

import random
from datetime import datetime, timedelta

from ordefy.config import Settings, settings


def compute_backoff(
    attempts: int,
    base_seconds: float,
    max_seconds: float,
    jitter_ratio: float = 0.0,
    rng: random.Random | None = None,
) -> float:
    """Delay in seconds before the next attempt, after ``attempts`` failures.

    The undelayed term doubles per attempt (base, 2*base, 4*base, ...). Jitter
    adds at most ``jitter_ratio`` of that term, and with ``jitter_ratio <= 1``
    the next attempt's floor is never below this attempt's ceiling, so the
    sequence stays non-decreasing until it hits ``max_seconds``.
    """
    if attempts < 1:
        return 0.0
    exponential = base_seconds * (2 ** (attempts - 1))
    jitter = (rng or random).uniform(0.0, jitter_ratio * exponential) if jitter_ratio else 0.0
    return min(max_seconds, exponential + jitter)


def next_attempt_at(
    attempts: int,
    now: datetime,
    config: Settings = settings,
    rng: random.Random | None = None,
) -> datetime:
    delay = compute_backoff(
        attempts,
        base_seconds=config.base_backoff_seconds,
        max_seconds=config.max_backoff_seconds,
        jitter_ratio=config.backoff_jitter_ratio,
        rng=rng,
    )
    return now + timedelta(seconds=delay)
