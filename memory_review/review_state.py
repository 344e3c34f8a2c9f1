"""Domain model for memory review scheduling state.

This module defines :class:`MemoryReviewState`, the scheduling data attached
to one captured memory, together with the review records folded into its
history and the four review grades.  It also provides helpers for
serialising the state to and from the JSON records that callers persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


class ReviewError(ValueError):
    """Base class for rejected review inputs."""


class InvalidScore(ReviewError):
    """Raised when a review grade is not one of Again/Hard/Good/Easy."""


class InvalidState(ReviewError):
    """Raised when a persisted review state is malformed."""


def ensure_utc(value: datetime) -> datetime:
    """Normalise *value* to a UTC timezone aware datetime."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    """Convert a JSON field into a UTC :class:`datetime`.

    Unlike lenient UI parsing, a value that cannot be read is a broken record
    and raises :class:`InvalidState`.
    """

    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1]
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError as exc:
            raise InvalidState(f"Unreadable timestamp: {value!r}") from exc
    raise InvalidState(f"Unreadable timestamp: {value!r}")


def _format_datetime(value: datetime) -> str:
    """Serialise a datetime in ISO-8601 format (UTC) for JSON storage."""

    return ensure_utc(value).isoformat().replace("+00:00", "Z")


class ReviewScore(IntEnum):
    """Grade a user assigns after trying to recall a memory."""

    AGAIN = 0
    HARD = 1
    GOOD = 2
    EASY = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: Any) -> "ReviewScore":
        """Return the grade for *value* or raise :class:`InvalidScore`.

        Accepts a :class:`ReviewScore`, a plain ``int`` in ``{0, 1, 2, 3}``
        or a label such as ``"good"``.  Booleans and floats are rejected even
        when they compare equal to a valid grade.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidScore(f"Unsupported score: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidScore(f"score must be in {{0, 1, 2, 3}}, got {value}") from None
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
        raise InvalidScore(f"Unsupported score: {value!r}")


_DESCRIPTIONS = {
    ReviewScore.AGAIN: "Couldn't recall",
    ReviewScore.HARD: "Partial recall",
    ReviewScore.GOOD: "Good recall",
    ReviewScore.EASY: "Perfect recall",
}


@dataclass(frozen=True)
class ReviewOutcome:
    """A graded review submitted by the user, before it is scheduled."""

    score: Any
    notes: Optional[str] = None


@dataclass(frozen=True)
class ReviewRecord:
    """One entry of a memory's review history."""

    timestamp: datetime
    score: ReviewScore
    interval_days: int
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.timestamp, datetime):
            object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    def to_storage_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _format_datetime(self.timestamp),
            "score": int(self.score),
            "interval_days": self.interval_days,
            "notes": self.notes,
        }

    @classmethod
    def from_storage(cls, payload: Mapping[str, Any]) -> "ReviewRecord":
        if not isinstance(payload, Mapping):
            raise InvalidState(f"History entries must be mappings, got {payload!r}")
        interval = payload.get("interval_days", payload.get("interval"))
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
            raise InvalidState(f"Invalid interval in history entry: {interval!r}")
        notes = payload.get("notes")
        return cls(
            timestamp=_parse_datetime(payload.get("timestamp")),
            score=ReviewScore.parse(payload.get("score")),
            interval_days=interval,
            notes=str(notes) if notes not in (None, "") else None,
        )


@dataclass(frozen=True)
class MemoryReviewState:
    """Scheduling state of a single memory.

    Parameters
    ----------
    next_review_at:
        Earliest instant at which the memory is eligible for review.
    review_count:
        Number of graded reviews applied so far.
    last_score:
        Most recent grade; :attr:`ReviewScore.AGAIN` before any review.
    history:
        Append-only sequence of past reviews, one per :attr:`review_count`.
    """

    next_review_at: datetime
    review_count: int = 0
    last_score: ReviewScore = ReviewScore.AGAIN
    history: Tuple[ReviewRecord, ...] = ()

    def __post_init__(self) -> None:
        # Non-datetime values are left for validate() to reject.
        if isinstance(self.next_review_at, datetime):
            object.__setattr__(self, "next_review_at", ensure_utc(self.next_review_at))

    @classmethod
    def new(cls, now: datetime) -> "MemoryReviewState":
        """State of a freshly captured memory, due immediately."""

        return cls(next_review_at=now)

    def validate(self) -> None:
        """Raise :class:`InvalidState` if the state breaks its invariants."""

        count = self.review_count
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidState(f"review_count must be a non-negative integer, got {count!r}")
        if len(self.history) != count:
            raise InvalidState(
                f"history holds {len(self.history)} entries but review_count is {count}"
            )
        if not isinstance(self.next_review_at, datetime):
            raise InvalidState("next_review_at must be a datetime")

    def replace(self, **changes: Any) -> "MemoryReviewState":
        """Return a new instance with *changes* applied."""

        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------
    def to_storage_dict(self) -> Dict[str, Any]:
        """Serialise the state into a JSON friendly dictionary."""

        return {
            "review_count": self.review_count,
            "last_score": int(self.last_score),
            "next_review_at": _format_datetime(self.next_review_at),
            "history": [entry.to_storage_dict() for entry in self.history],
        }

    @classmethod
    def from_storage(cls, payload: Mapping[str, Any]) -> "MemoryReviewState":
        """Create a :class:`MemoryReviewState` from a JSON record.

        Both the snake_case keys written by :meth:`to_storage_dict` and the
        camelCase keys of the journaling app's memory rows are understood.
        """

        raw_history = payload.get("history", payload.get("reviewHistory", []))
        if not isinstance(raw_history, Sequence) or isinstance(raw_history, (str, bytes)):
            raise InvalidState("history must be a list of review entries")
        history: List[ReviewRecord] = [ReviewRecord.from_storage(entry) for entry in raw_history]

        next_review = payload.get("next_review_at", payload.get("nextReview"))
        state = cls(
            next_review_at=_parse_datetime(next_review),
            review_count=payload.get("review_count", payload.get("reviewCount", 0)),
            last_score=ReviewScore.parse(payload.get("last_score", payload.get("lastScore", 0))),
            history=tuple(history),
        )
        state.validate()
        return state


@dataclass
class MemoryRecord:
    """A captured memory as seen by the review workflow."""

    memory_id: str
    title: str
    created_at: datetime
    review: MemoryReviewState
    kind: str = "personal"
    tags: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)
        if not self.kind:
            self.kind = "personal"


__all__ = [
    "InvalidScore",
    "InvalidState",
    "MemoryRecord",
    "MemoryReviewState",
    "ReviewError",
    "ReviewOutcome",
    "ReviewRecord",
    "ReviewScore",
]
