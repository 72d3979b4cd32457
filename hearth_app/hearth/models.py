"""Data models for the hearth focus timer."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


def new_record_id() -> str:
    return uuid.uuid4().hex


class TimerMode(str, Enum):
    FOCUS = "FOCUS"
    SHORT_BREAK = "SHORT_BREAK"
    LONG_BREAK = "LONG_BREAK"
    COUNT_UP = "COUNT_UP"

    @property
    def counts_down(self) -> bool:
        return self is not TimerMode.COUNT_UP

    @property
    def is_break(self) -> bool:
        return self in (TimerMode.SHORT_BREAK, TimerMode.LONG_BREAK)


class TimerStatus(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


class Period(str, Enum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"

    @classmethod
    def parse(cls, value: object, default: "Period | None" = None) -> "Period":
        try:
            return cls(str(value).upper())
        except ValueError:
            if default is None:
                raise
            return default


@dataclass(frozen=True)
class Activity:
    """A selectable catalog entry. A nominal duration of zero means count-up."""

    id: str
    name: str
    icon_key: str
    nominal_duration_minutes: int
    color: str = "#ffffff"

    @property
    def is_count_up(self) -> bool:
        return self.nominal_duration_minutes == 0


@dataclass(frozen=True)
class Clock:
    """State of the single session clock. Transitions return new instances."""

    mode: TimerMode
    status: TimerStatus
    remaining_or_elapsed_seconds: int
    configured_duration_minutes: int

    def evolve(self, **changes) -> "Clock":
        return replace(self, **changes)

    @property
    def formatted(self) -> str:
        minutes, seconds = divmod(self.remaining_or_elapsed_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"


@dataclass(frozen=True)
class FocusRecord:
    """One completed, recordable session as stored in the ledger."""

    id: str
    category: str
    duration_minutes: int
    timestamp_millis: int
    activity_name: str

    @classmethod
    def from_dict(cls, data: dict) -> "FocusRecord":
        if not isinstance(data, dict):
            raise ValueError(f"record must be an object, got {type(data).__name__}")
        record_id = data.get("id")
        category = data.get("category")
        if record_id in (None, "") or not isinstance(category, str) or not category:
            raise ValueError(f"record is missing id or category: {data!r}")
        duration = data.get("duration", data.get("durationMinutes"))
        timestamp = data.get("timestamp", data.get("timestampMillis"))
        if isinstance(duration, bool) or isinstance(timestamp, bool):
            raise ValueError(f"record has non-numeric fields: {data!r}")
        try:
            duration_minutes = int(duration)
            timestamp_millis = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"record has non-numeric fields: {data!r}") from exc
        if duration_minutes < 0:
            raise ValueError(f"record has negative duration: {data!r}")
        activity_name = data.get("activityName", data.get("foodName")) or ""
        return cls(
            id=str(record_id),
            category=category,
            duration_minutes=duration_minutes,
            timestamp_millis=timestamp_millis,
            activity_name=str(activity_name),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "duration": self.duration_minutes,
            "timestamp": self.timestamp_millis,
            "activityName": self.activity_name,
        }

    def evolve(self, **changes) -> "FocusRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class Transition:
    """Result of a clock transition: the next clock and an optional emitted record."""

    clock: Clock
    record: Optional[FocusRecord] = None
