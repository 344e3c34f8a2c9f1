import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from memory_review.analytics import REVIEW_COLUMNS, compute_user_analytics, review_frame


def utc(month, day, hour=12):
    return datetime(2024, month, day, hour, 0, tzinfo=timezone.utc)


def test_review_frame_has_one_row_per_review(journal):
    frame = review_frame(journal)

    assert list(frame.columns) == REVIEW_COLUMNS
    assert len(frame) == 3
    assert sorted(frame["memory_id"]) == ["hike", "hike", "seminar"]
    assert frame["interval_days"].tolist() == [1, 4, 1]


def test_review_frame_empty_input():
    frame = review_frame([])
    assert frame.empty
    assert list(frame.columns) == REVIEW_COLUMNS


def test_compute_user_analytics(journal):
    stats = compute_user_analytics(journal, utc(6, 15, 12))

    assert stats.total_memories == 3
    assert stats.due_for_review == 1
    assert stats.accuracy_rate == pytest.approx(200.0 / 3)
    assert stats.avg_recall_score == pytest.approx(1.5)
    assert stats.review_streak == 3
    assert stats.score_breakdown == {"Again": 1, "Hard": 0, "Good": 1, "Easy": 1}
    assert stats.retention_by_kind == {"educational": 0.0, "personal": 100.0}


def test_due_count_follows_the_clock(journal):
    assert compute_user_analytics(journal, utc(6, 16, 12)).due_for_review == 2
    assert compute_user_analytics(journal, utc(6, 18, 12)).due_for_review == 3


@pytest.mark.parametrize("month, day, expected", [(6, 15, 3), (6, 16, 3), (6, 17, 0)])
def test_streak_survives_until_the_day_after(journal, month, day, expected):
    assert compute_user_analytics(journal, utc(month, day)).review_streak == expected


def test_analytics_without_reviews():
    stats = compute_user_analytics([], utc(6, 15))

    assert stats.total_memories == 0
    assert stats.accuracy_rate == 0.0
    assert stats.avg_recall_score == 0.0
    assert stats.review_streak == 0
    assert stats.score_breakdown == {"Again": 0, "Hard": 0, "Good": 0, "Easy": 0}
    assert stats.to_dict()["retention_by_kind"] == {}
