"""Aggregate review statistics for a user's memories.

These numbers are recomputed by the caller after each review and shown on
the analytics page.  They are derived from the review histories only and play
no part in scheduling.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .review_state import MemoryRecord, ReviewScore, ensure_utc
from .scheduler import is_due

REVIEW_COLUMNS = ["memory_id", "kind", "timestamp", "score", "interval_days"]


@dataclass
class UserAnalytics:
    total_memories: int = 0
    due_for_review: int = 0
    accuracy_rate: float = 0.0
    avg_recall_score: float = 0.0
    review_streak: int = 0
    score_breakdown: Dict[str, int] = field(default_factory=dict)
    retention_by_kind: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def review_frame(records: Iterable[MemoryRecord]) -> pd.DataFrame:
    """Flatten every review history into one frame, one row per review."""

    rows: List[Dict[str, Any]] = []
    for record in records:
        for entry in record.review.history:
            rows.append(
                {
                    "memory_id": record.memory_id,
                    "kind": record.kind,
                    "timestamp": entry.timestamp,
                    "score": int(entry.score),
                    "interval_days": entry.interval_days,
                }
            )
    frame = pd.DataFrame(rows, columns=REVIEW_COLUMNS)
    if not frame.empty:
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    return frame


def _accuracy(scores: pd.Series) -> float:
    if scores.empty:
        return 0.0
    return float((scores >= int(ReviewScore.GOOD)).mean() * 100.0)


def _review_streak(frame: pd.DataFrame, now: datetime) -> int:
    if frame.empty:
        return 0
    days = set(frame["timestamp"].dt.date)
    cursor = now.date()
    if cursor not in days:
        # A streak survives until the end of the day after the last review.
        cursor -= timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_user_analytics(
    records: Sequence[MemoryRecord], now: Optional[datetime] = None
) -> UserAnalytics:
    """Summarise *records* the way the analytics page presents them."""

    current = ensure_utc(now) if now else datetime.now(tz=timezone.utc)
    frame = review_frame(records)

    reviewed = [r for r in records if r.review.review_count > 0]
    avg_recall = (
        sum(int(r.review.last_score) for r in reviewed) / len(reviewed) if reviewed else 0.0
    )

    breakdown = {score.label: 0 for score in ReviewScore}
    if not frame.empty:
        for value, count in frame["score"].value_counts().items():
            breakdown[ReviewScore(int(value)).label] = int(count)

    retention: Dict[str, float] = {}
    if not frame.empty:
        for kind, scores in frame.groupby("kind")["score"]:
            retention[str(kind)] = _accuracy(scores)

    return UserAnalytics(
        total_memories=len(records),
        due_for_review=sum(1 for r in records if is_due(r.review, current)),
        accuracy_rate=_accuracy(frame["score"]),
        avg_recall_score=float(avg_recall),
        review_streak=_review_streak(frame, current),
        score_breakdown=breakdown,
        retention_by_kind=retention,
    )


__all__ = [
    "REVIEW_COLUMNS",
    "UserAnalytics",
    "compute_user_analytics",
    "review_frame",
]
