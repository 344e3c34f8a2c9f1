"""Spaced repetition scheduling for a memory journal."""

from .policy import IntervalPolicy, load_policy
from .review_state import (
    InvalidScore,
    InvalidState,
    MemoryRecord,
    MemoryReviewState,
    ReviewError,
    ReviewOutcome,
    ReviewRecord,
    ReviewScore,
)
from .scheduler import (
    FixedRandom,
    RandomSource,
    ReviewScheduler,
    apply_review,
    compute_interval,
    is_due,
)

__all__ = [
    "FixedRandom",
    "IntervalPolicy",
    "InvalidScore",
    "InvalidState",
    "MemoryRecord",
    "MemoryReviewState",
    "RandomSource",
    "ReviewError",
    "ReviewOutcome",
    "ReviewRecord",
    "ReviewScheduler",
    "ReviewScore",
    "apply_review",
    "compute_interval",
    "is_due",
    "load_policy",
]
