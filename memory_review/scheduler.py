"""Spaced repetition scheduler for captured memories.

The policy is a deliberately simple step function of the review count taken
*before* the current review: Again resets to one day, Hard halves the count,
Good doubles it and Easy quadruples it.  Every interval is then perturbed by a
small multiplicative jitter so that memories captured together do not all
fall due on the same day.  The randomness source is injectable so callers can
pin the jitter in tests.
"""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from loguru import logger

from .policy import IntervalPolicy
from .review_state import (
    InvalidScore,
    InvalidState,
    MemoryReviewState,
    ReviewOutcome,
    ReviewRecord,
    ReviewScore,
    ensure_utc,
)

__all__ = [
    "FixedRandom",
    "InvalidScore",
    "InvalidState",
    "RandomSource",
    "ReviewScheduler",
    "apply_review",
    "compute_interval",
    "is_due",
]


class RandomSource(Protocol):
    """Anything exposing ``random() -> float`` in ``[0, 1)``."""

    def random(self) -> float:
        ...


class FixedRandom:
    """Randomness source that always returns the same draw.

    ``FixedRandom(0.5)`` yields zero jitter.
    """

    def __init__(self, value: float = 0.5) -> None:
        if not 0.0 <= value < 1.0:
            raise ValueError("value must be in [0, 1)")
        self.value = value

    def random(self) -> float:
        return self.value


# SystemRandom has no seed state to share between threads.
_SYSTEM_RANDOM = random.SystemRandom()
_DEFAULT_POLICY = IntervalPolicy()


def _validate_count(review_count: Any) -> int:
    if isinstance(review_count, bool) or not isinstance(review_count, int) or review_count < 0:
        raise InvalidState(f"review count must be a non-negative integer, got {review_count!r}")
    return review_count


def _scaled(count: int, multiplier: float, policy: IntervalPolicy) -> int:
    if multiplier <= 0:
        return 0
    # Past this count the jittered interval is clamped to the maximum anyway.
    ceiling = math.ceil(policy.maximum_interval / (multiplier * policy.jitter_bounds[0])) + 1
    return math.floor(min(count, ceiling) * multiplier)


def _base_interval(score: ReviewScore, count: int, policy: IntervalPolicy) -> int:
    if score is ReviewScore.AGAIN:
        return policy.again_interval
    multiplier = {
        ReviewScore.HARD: policy.hard_multiplier,
        ReviewScore.GOOD: policy.good_multiplier,
        ReviewScore.EASY: policy.easy_multiplier,
    }[score]
    return max(policy.minimum_interval, _scaled(count, multiplier, policy))


def compute_interval(
    score: Any,
    review_count_before: int,
    *,
    rng: Optional[RandomSource] = None,
    policy: Optional[IntervalPolicy] = None,
) -> int:
    """Return the number of days until the memory is due again.

    *review_count_before* is the count before this review is applied, so the
    first Good or Easy review of a memory always lands on the one-day floor.
    """

    grade = ReviewScore.parse(score)
    count = _validate_count(review_count_before)
    policy = policy or _DEFAULT_POLICY
    rng = rng or _SYSTEM_RANDOM

    base = _base_interval(grade, count, policy)
    jitter = (2.0 * rng.random() - 1.0) * policy.jitter_ratio
    interval = max(policy.minimum_interval, math.floor(base * (1.0 + jitter)))
    return min(interval, policy.maximum_interval)


def apply_review(
    state: MemoryReviewState,
    outcome: ReviewOutcome,
    now: datetime,
    *,
    rng: Optional[RandomSource] = None,
    policy: Optional[IntervalPolicy] = None,
) -> MemoryReviewState:
    """Fold *outcome* into *state* and return the rescheduled state.

    The input state is never modified; validation happens before any work so
    a rejected review leaves nothing half-applied.
    """

    grade = ReviewScore.parse(outcome.score)
    state.validate()
    now = ensure_utc(now)

    interval = compute_interval(grade, state.review_count, rng=rng, policy=policy)
    record = ReviewRecord(timestamp=now, score=grade, interval_days=interval, notes=outcome.notes)
    logger.debug(
        f"Review #{state.review_count + 1} graded {grade.label}: next in {interval} day(s)"
    )
    return state.replace(
        review_count=state.review_count + 1,
        last_score=grade,
        next_review_at=now + timedelta(days=interval),
        history=state.history + (record,),
    )


def is_due(state: MemoryReviewState, now: datetime) -> bool:
    """Return ``True`` once *now* has reached the scheduled review instant."""

    return ensure_utc(state.next_review_at) <= ensure_utc(now)


class ReviewScheduler:
    """Scheduler bound to one interval policy and one randomness source."""

    def __init__(
        self,
        policy: Optional[IntervalPolicy] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.policy = policy or _DEFAULT_POLICY
        self.rng = rng or _SYSTEM_RANDOM

    def get_policy(self) -> IntervalPolicy:
        return self.policy

    def set_policy(self, policy: IntervalPolicy) -> None:
        self.policy = policy

    def new_state(self, now: datetime) -> MemoryReviewState:
        return MemoryReviewState.new(now)

    def compute_interval(self, score: Any, review_count_before: int) -> int:
        return compute_interval(score, review_count_before, rng=self.rng, policy=self.policy)

    def apply_review(
        self, state: MemoryReviewState, outcome: ReviewOutcome, now: datetime
    ) -> MemoryReviewState:
        return apply_review(state, outcome, now, rng=self.rng, policy=self.policy)

    def is_due(self, state: MemoryReviewState, now: datetime) -> bool:
        return is_due(state, now)
