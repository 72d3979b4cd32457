"""Reporting: period filtering, category totals, chart geometry and the day timeline."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ConfirmationRequired, UnknownCategoryError
from .ledger import SessionLedger
from .models import FocusRecord, Period, new_record_id

LOGGER = logging.getLogger(__name__)

PIXELS_PER_MINUTE = 1.0
MINIMUM_BLOCK_HEIGHT = 20.0
MINIMUM_CREATE_DURATION = 5
DRAG_PREVIEW_MINUTES = 15
MINUTES_PER_DAY = 24 * 60
CHART_START_ANGLE = -math.pi / 2
CATEGORY_PALETTE = ["#8b4513", "#a67c52", "#5d4037", "#3e2723", "#166534", "#2e7d32"]
MANUAL_ACTIVITY_NAME = "Manually Added"
CANDIDATE_ACTIVITY_NAME = "Custom Entry"


def to_local(timestamp_millis: int) -> datetime:
    return datetime.fromtimestamp(timestamp_millis / 1000)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def format_duration(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


# Period filter
def period_cutoff(period: Period, now: datetime) -> datetime:
    """Earliest start time included in ``period``. WEEK and MONTH are rolling windows."""
    if period is Period.DAY:
        return datetime.combine(now.date(), time.min)
    if period is Period.WEEK:
        return now - timedelta(days=7)
    return now - timedelta(days=30)


def filter_records(records: Iterable[FocusRecord], period: Period, now: datetime) -> List[FocusRecord]:
    cutoff = to_millis(period_cutoff(period, now))
    return [record for record in records if record.timestamp_millis >= cutoff]


# Totals
@dataclass(frozen=True)
class Summary:
    totals: Dict[str, int]
    grand_total: int
    count: int


@dataclass(frozen=True)
class AllocationRow:
    category: str
    minutes: int
    percent: float

    @property
    def label(self) -> str:
        return f"{self.category}: {format_duration(self.minutes)} ({self.percent:.0f}%)"


def summarize(records: Sequence[FocusRecord]) -> Summary:
    """Category totals in first-appearance order, computed from one record set."""
    totals: Dict[str, int] = {}
    for record in records:
        totals[record.category] = totals.get(record.category, 0) + record.duration_minutes
    return Summary(totals=totals, grand_total=sum(totals.values()), count=len(records))


def allocation(summary: Summary) -> List[AllocationRow]:
    rows = [
        AllocationRow(category, minutes, minutes / summary.grand_total * 100)
        for category, minutes in summary.totals.items()
        if minutes > 0
    ]
    return sorted(rows, key=lambda row: row.minutes, reverse=True)


# Chart geometry
@dataclass(frozen=True)
class ChartSlice:
    """One category's share of the circle, measured in fractions of a turn."""

    category: str
    value: int
    start_fraction: float
    sweep_fraction: float

    @property
    def end_fraction(self) -> float:
        return self.start_fraction + self.sweep_fraction

    @property
    def start_angle(self) -> float:
        return CHART_START_ANGLE + 2 * math.pi * self.start_fraction

    @property
    def end_angle(self) -> float:
        return CHART_START_ANGLE + 2 * math.pi * self.end_fraction

    @property
    def large_arc(self) -> bool:
        return self.sweep_fraction > 0.5

    def svg_path(self, cx: float = 50.0, cy: float = 50.0, radius: float = 45.0) -> str:
        # Screen coordinates grow downwards, so increasing angles run clockwise.
        start_x = cx + radius * math.cos(self.start_angle)
        start_y = cy + radius * math.sin(self.start_angle)
        end_x = cx + radius * math.cos(self.end_angle)
        end_y = cy + radius * math.sin(self.end_angle)
        return (
            f"M {cx:g} {cy:g} L {start_x:.3f} {start_y:.3f} "
            f"A {radius:g} {radius:g} 0 {int(self.large_arc)} 1 {end_x:.3f} {end_y:.3f} Z"
        )


def chart_slices(summary: Summary) -> List[ChartSlice]:
    if summary.grand_total <= 0:
        return []
    slices: List[ChartSlice] = []
    cumulative = 0.0
    for category, value in summary.totals.items():
        fraction = value / summary.grand_total
        slices.append(ChartSlice(category, value, cumulative, fraction))
        cumulative += fraction
    return slices


def category_color(category: str, categories: Sequence[str], index: int) -> str:
    """Palette colour keyed by the category's position, or by ``index`` for unknown ones."""
    try:
        position = list(categories).index(category)
    except ValueError:
        position = index
    return CATEGORY_PALETTE[position % len(CATEGORY_PALETTE)]


# Timeline
@dataclass(frozen=True)
class TimelineBlock:
    record: FocusRecord
    top: float
    height: float
    z_index: int

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, y: float) -> bool:
        return self.top <= y < self.bottom


def minute_of_day(timestamp_millis: int) -> int:
    moment = to_local(timestamp_millis)
    return moment.hour * 60 + moment.minute


def layout_timeline(
    records: Sequence[FocusRecord],
    pixels_per_minute: float = PIXELS_PER_MINUTE,
    minimum_block_height: float = MINIMUM_BLOCK_HEIGHT,
) -> List[TimelineBlock]:
    """Place records on a vertical day axis.

    ``records`` is in ledger order (most recent first), so the first record
    gets the highest z-index and overlapping blocks show the newest on top.
    """
    count = len(records)
    return [
        TimelineBlock(
            record=record,
            top=minute_of_day(record.timestamp_millis) * pixels_per_minute,
            height=max(record.duration_minutes * pixels_per_minute, minimum_block_height),
            z_index=count - index,
        )
        for index, record in enumerate(records)
    ]


def hit_test(blocks: Iterable[TimelineBlock], y: float) -> Optional[TimelineBlock]:
    hits = [block for block in blocks if block.contains(y)]
    return max(hits, key=lambda block: block.z_index) if hits else None


def hour_markers(pixels_per_minute: float = PIXELS_PER_MINUTE) -> List[Tuple[str, float]]:
    return [(f"{hour:02d}:00", hour * 60 * pixels_per_minute) for hour in range(24)]


def now_marker_offset(now: datetime, pixels_per_minute: float = PIXELS_PER_MINUTE) -> float:
    return (now.hour * 60 + now.minute) * pixels_per_minute


# Pointer-driven creation
@dataclass(frozen=True)
class CandidateRecord:
    """A record proposed by a drag, waiting for the user to confirm it."""

    category: str
    duration_minutes: int
    timestamp_millis: int
    activity_name: str = CANDIDATE_ACTIVITY_NAME

    @property
    def start_time_of_day(self) -> time:
        return to_local(self.timestamp_millis).time().replace(second=0, microsecond=0)


class DragGesture:
    """Pointer state for dragging out a new record on the empty timeline."""

    def __init__(self, pixels_per_minute: float = PIXELS_PER_MINUTE) -> None:
        self.pixels_per_minute = pixels_per_minute
        self.start_minute: Optional[int] = None
        self.end_minute: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.start_minute is not None

    def _bucket(self, y: float) -> int:
        minute = math.floor(y / self.pixels_per_minute)
        return min(max(minute, 0), MINUTES_PER_DAY - 1)

    def pointer_down(self, y: float, blocks: Iterable[TimelineBlock] = ()) -> Optional[TimelineBlock]:
        """Return the block under the pointer, or start a drag when there is none."""
        hit = hit_test(blocks, y)
        if hit is not None:
            self.cancel()
            return hit
        self.start_minute = self._bucket(y)
        self.end_minute = min(self.start_minute + DRAG_PREVIEW_MINUTES, MINUTES_PER_DAY)
        return None

    def pointer_move(self, y: float) -> None:
        if self.active:
            self.end_minute = self._bucket(y)

    def selection(self) -> Optional[Tuple[float, float]]:
        """Preview rectangle as ``(top, height)`` in pixels."""
        if not self.active:
            return None
        top = min(self.start_minute, self.end_minute) * self.pixels_per_minute
        return top, abs(self.end_minute - self.start_minute) * self.pixels_per_minute

    def pointer_up(self, category: str, today: date) -> Optional[CandidateRecord]:
        if not self.active:
            return None
        start = min(self.start_minute, self.end_minute)
        end = max(self.start_minute, self.end_minute)
        self.cancel()
        started = datetime.combine(today, time(start // 60, start % 60))
        return CandidateRecord(
            category=category,
            duration_minutes=max(end - start, MINIMUM_CREATE_DURATION),
            timestamp_millis=to_millis(started),
        )

    def cancel(self) -> None:
        self.start_minute = None
        self.end_minute = None


def confirm_candidate(
    candidate: CandidateRecord,
    category: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    start_time_of_day: Optional[time] = None,
) -> FocusRecord:
    """Turn a confirmed candidate, with any edits, into a ledger record."""
    started = to_local(candidate.timestamp_millis)
    if start_time_of_day is not None:
        started = started.replace(hour=start_time_of_day.hour, minute=start_time_of_day.minute, second=0, microsecond=0)
    return FocusRecord(
        id=new_record_id(),
        category=category or candidate.category,
        duration_minutes=candidate.duration_minutes if duration_minutes is None else duration_minutes,
        timestamp_millis=to_millis(started),
        activity_name=MANUAL_ACTIVITY_NAME,
    )


# List view
@dataclass
class ListGroup:
    label: str
    day: date
    records: List[FocusRecord] = field(default_factory=list)


def group_by_day(records: Iterable[FocusRecord]) -> List[ListGroup]:
    groups: Dict[date, ListGroup] = {}
    for record in records:
        day = to_local(record.timestamp_millis).date()
        if day not in groups:
            groups[day] = ListGroup(label=day.strftime("%a, %b %d"), day=day)
        groups[day].records.append(record)
    return list(groups.values())


class ReportView:
    """View state over the ledger: period, drill-down and the derived views.

    Derived properties are recomputed from the current ledger snapshot on
    every access, so they always reflect the latest mutation.
    """

    def __init__(
        self,
        ledger: SessionLedger,
        period: Period = Period.DAY,
        pixels_per_minute: float = PIXELS_PER_MINUTE,
        minimum_block_height: float = MINIMUM_BLOCK_HEIGHT,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.ledger = ledger
        self.period = period
        self.selected_category: Optional[str] = None
        self.pixels_per_minute = pixels_per_minute
        self.minimum_block_height = minimum_block_height
        self._now = now
        self.gesture = DragGesture(pixels_per_minute)

    @property
    def now(self) -> datetime:
        return self._now()

    def set_period(self, period: Period) -> None:
        self.period = period
        self.selected_category = None
        self.gesture.cancel()

    def select_category(self, category: Optional[str]) -> None:
        self.selected_category = category
        self.gesture.cancel()

    def is_highlighted(self, category: str) -> bool:
        return self.selected_category == category

    @property
    def filtered_records(self) -> List[FocusRecord]:
        return filter_records(self.ledger.records, self.period, self.now)

    @property
    def summary(self) -> Summary:
        return summarize(self.filtered_records)

    @property
    def category_totals(self) -> Dict[str, int]:
        return self.summary.totals

    @property
    def grand_total(self) -> int:
        return self.summary.grand_total

    @property
    def count(self) -> int:
        return self.summary.count

    @property
    def slices(self) -> List[ChartSlice]:
        return chart_slices(self.summary)

    @property
    def allocation(self) -> List[AllocationRow]:
        return allocation(self.summary)

    @property
    def displayed_records(self) -> List[FocusRecord]:
        records = self.filtered_records
        if self.selected_category is None:
            return records
        return [record for record in records if record.category == self.selected_category]

    @property
    def timeline_active(self) -> bool:
        return self.period is Period.DAY and self.selected_category is None

    @property
    def timeline_blocks(self) -> List[TimelineBlock]:
        if not self.timeline_active:
            return []
        return layout_timeline(self.filtered_records, self.pixels_per_minute, self.minimum_block_height)

    @property
    def list_groups(self) -> List[ListGroup]:
        return group_by_day(self.displayed_records)

    def category_colors(self) -> Dict[str, str]:
        categories = self.ledger.categories
        return {
            category: category_color(category, categories, index)
            for index, category in enumerate(self.category_totals)
        }

    # Edit surface
    def _validate(self, category: Optional[str], duration_minutes: Optional[int]) -> None:
        if category is not None and category not in self.ledger.categories:
            raise UnknownCategoryError(category)
        if duration_minutes is not None and (
            isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes < 0
        ):
            raise ValueError(f"Duration must be a non-negative number of minutes, got {duration_minutes!r}")

    def submit_edit(
        self,
        record_id: str,
        category: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        start_time_of_day: Optional[time] = None,
    ) -> FocusRecord:
        self._validate(category, duration_minutes)
        return self.ledger.update_record(record_id, category, duration_minutes, start_time_of_day)

    def submit_delete(self, record_id: str, confirmed: bool = False) -> FocusRecord:
        if not confirmed:
            raise ConfirmationRequired(f"Deleting record {record_id} cannot be undone")
        return self.ledger.delete_record(record_id)

    # Drag-create surface
    def begin_drag(self, y: float) -> Optional[FocusRecord]:
        """Press on the timeline: returns the record to edit when a block was hit."""
        if not self.timeline_active:
            return None
        hit = self.gesture.pointer_down(y, self.timeline_blocks)
        return hit.record if hit is not None else None

    def move_drag(self, y: float) -> None:
        self.gesture.pointer_move(y)

    def end_drag(self, category: Optional[str] = None) -> Optional[CandidateRecord]:
        return self.gesture.pointer_up(category or self.ledger.categories[0], self.now.date())

    def save_candidate(
        self,
        candidate: CandidateRecord,
        category: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        start_time_of_day: Optional[time] = None,
    ) -> FocusRecord:
        self._validate(
            category or candidate.category,
            candidate.duration_minutes if duration_minutes is None else duration_minutes,
        )
        record = confirm_candidate(candidate, category, duration_minutes, start_time_of_day)
        return self.ledger.append(record)
