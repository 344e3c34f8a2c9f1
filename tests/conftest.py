import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from memory_review.review_service import MemoryReviewStore
from memory_review.review_state import ReviewOutcome
from memory_review.scheduler import FixedRandom, ReviewScheduler


def utc(month, day, hour=12):
    return datetime(2024, month, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def journal():
    """Three memories with a known review history, as of 2024-06-15 noon.

    ``hike`` (personal, morning capture): Good on 06-13, Easy on 06-14.
    ``seminar`` (educational, evening capture): Again on 06-15.
    ``cafe`` (personal, afternoon capture): never reviewed.
    """

    scheduler = ReviewScheduler(rng=FixedRandom(0.5))
    store = MemoryReviewStore()
    store.create("hike", "Ridge hike", kind="personal", now=utc(6, 12, 8))
    store.create("seminar", "Compilers seminar", kind="educational", now=utc(6, 10, 20))
    store.create("cafe", "Corner cafe", kind="personal", now=utc(6, 14, 14))

    store.apply("hike", ReviewOutcome(score=2), utc(6, 13, 9), scheduler)
    store.apply("hike", ReviewOutcome(score=3), utc(6, 14, 9), scheduler)
    store.apply("seminar", ReviewOutcome(score=0), utc(6, 15, 9), scheduler)
    return store.all()
