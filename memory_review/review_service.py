"""High level helpers that orchestrate memory reviews for the application."""

from __future__ import annotations

import asyncio
import threading
from bisect import insort
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .review_state import InvalidScore, MemoryRecord, MemoryReviewState, ReviewOutcome, ensure_utc
from .scheduler import ReviewScheduler, is_due


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class MemoryNotFound(KeyError):
    """Raised when a review targets a memory the store does not hold."""


class MemoryReviewStore:
    """In-process memory store that serialises reviews per memory.

    Each memory has its own lock, held across load, scheduling and write-back,
    so two concurrent reviews of the same memory are applied one after the
    other instead of overwriting each other.
    """

    def __init__(self) -> None:
        self._records: Dict[str, MemoryRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, memory_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(memory_id, threading.Lock())

    def add(self, record: MemoryRecord) -> MemoryRecord:
        record.review.validate()
        with self._guard:
            self._records[record.memory_id] = record
        return record

    def create(
        self,
        memory_id: str,
        title: str,
        *,
        kind: str = "personal",
        tags: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> MemoryRecord:
        """Capture a new memory; its review state is due immediately."""

        created = ensure_utc(now) if now else _utc_now()
        record = MemoryRecord(
            memory_id=memory_id,
            title=title,
            created_at=created,
            review=MemoryReviewState.new(created),
            kind=kind,
            tags=list(tags or []),
        )
        return self.add(record)

    def get(self, memory_id: str) -> MemoryRecord:
        try:
            return self._records[memory_id]
        except KeyError:
            raise MemoryNotFound(memory_id) from None

    def delete(self, memory_id: str) -> bool:
        with self._guard:
            self._locks.pop(memory_id, None)
            return self._records.pop(memory_id, None) is not None

    def all(self) -> List[MemoryRecord]:
        with self._guard:
            return list(self._records.values())

    def apply(
        self,
        memory_id: str,
        outcome: ReviewOutcome,
        now: datetime,
        scheduler: ReviewScheduler,
    ) -> MemoryRecord:
        with self._lock_for(memory_id):
            record = self.get(memory_id)
            updated = scheduler.apply_review(record.review, outcome, now)
            record.review = updated
            return record


async def submit_review(
    store: MemoryReviewStore,
    memory_id: str,
    score: Any,
    *,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> MemoryRecord:
    """Grade *memory_id* with *score* and store the rescheduled state."""

    event_dt = ensure_utc(now) if now else _utc_now()
    scheduler = scheduler or ReviewScheduler()
    try:
        record = store.apply(memory_id, ReviewOutcome(score=score, notes=notes), event_dt, scheduler)
    except InvalidScore:
        logger.warning(f"Rejected review for memory {memory_id}: invalid score {score!r}")
        raise

    state = record.review
    logger.info(
        f"Memory {memory_id} reviewed ({state.last_score.label}), "
        f"review #{state.review_count}, next due {state.next_review_at.isoformat()}"
    )
    return record


def submit_review_sync(
    store: MemoryReviewStore,
    memory_id: str,
    score: Any,
    *,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    scheduler: Optional[ReviewScheduler] = None,
) -> MemoryRecord:
    """Synchronous wrapper around :func:`submit_review`."""

    return asyncio.run(
        submit_review(
            store,
            memory_id,
            score,
            notes=notes,
            now=now,
            scheduler=scheduler,
        )
    )


def _due_key(record: MemoryRecord) -> Tuple[datetime, str]:
    return ensure_utc(record.review.next_review_at), record.memory_id


def due_memories(records: Iterable[MemoryRecord], now: Optional[datetime] = None) -> List[MemoryRecord]:
    """Return the records due at *now*, most overdue first."""

    current = ensure_utc(now) if now else _utc_now()
    return sorted((r for r in records if is_due(r.review, current)), key=_due_key)


def memories_on_this_day(records: Iterable[MemoryRecord], day: Optional[date] = None) -> List[MemoryRecord]:
    """Return memories captured on this calendar day in earlier years."""

    target = day or _utc_now().date()
    return [
        record
        for record in records
        if record.created_at.month == target.month
        and record.created_at.day == target.day
        and record.created_at.year != target.year
    ]


@dataclass
class QueueSnapshot:
    due: int
    upcoming: int
    total: int


class DueQueue:
    """Review queue for one practice session."""

    def __init__(self, records: Sequence[MemoryRecord], *, now: Optional[datetime] = None) -> None:
        self.now = ensure_utc(now) if now else _utc_now()
        self.ready: Deque[MemoryRecord] = deque()
        self.upcoming: List[Tuple[datetime, str, MemoryRecord]] = []
        self.active: Optional[MemoryRecord] = None
        for record in sorted(records, key=_due_key):
            self._enqueue(record)

    def _enqueue(self, record: MemoryRecord) -> None:
        if is_due(record.review, self.now):
            self.ready.append(record)
        else:
            insort(self.upcoming, _due_key(record) + (record,))

    def advance(self, now: datetime) -> None:
        """Move the queue clock forward and promote newly due memories."""

        self.now = ensure_utc(now)
        while self.upcoming and self.upcoming[0][0] <= self.now:
            _, _, record = self.upcoming.pop(0)
            self.ready.append(record)

    def next_memory(self) -> Optional[MemoryRecord]:
        self.active = self.ready.popleft() if self.ready else None
        return self.active

    def record_outcome(self, record: MemoryRecord) -> None:
        """Requeue *record* after it was reviewed."""

        if self.active is record:
            self.active = None
        self._enqueue(record)

    def counts(self) -> QueueSnapshot:
        return QueueSnapshot(
            due=len(self.ready),
            upcoming=len(self.upcoming),
            total=len(self.ready) + len(self.upcoming),
        )


__all__ = [
    "DueQueue",
    "MemoryNotFound",
    "MemoryReviewStore",
    "QueueSnapshot",
    "due_memories",
    "memories_on_this_day",
    "submit_review",
    "submit_review_sync",
]
