"""Session clock state machine and the engine that hosts it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from . import catalog
from .errors import ConfirmationRequired, UnknownCategoryError
from .models import Activity, Clock, FocusRecord, TimerMode, TimerStatus, Transition, new_record_id

if TYPE_CHECKING:  # pragma: no cover - hints only
    from .ledger import SessionLedger

LOGGER = logging.getLogger(__name__)

MAX_MANUAL_MINUTES = 999


class TickScheduler(Protocol):
    def now_millis(self) -> int: ...

    def schedule_every(self, interval: float, callback: Callable[[], None]) -> int: ...

    def cancel(self, handle: int) -> None: ...


@dataclass(frozen=True)
class SessionContext:
    """What a completed session is attributed to."""

    activity: Activity
    category: str
    record_breaks: bool = False


def is_recordable(mode: TimerMode, record_breaks: bool = False) -> bool:
    if mode.is_break:
        return record_breaks
    return True


def mode_for_activity(activity: Activity, current: TimerMode) -> TimerMode:
    if activity.is_count_up:
        return TimerMode.COUNT_UP
    if current is TimerMode.COUNT_UP:
        return TimerMode.FOCUS
    if activity in catalog.BREAK_ITEMS and not current.is_break:
        return TimerMode.SHORT_BREAK
    if activity in catalog.FOCUS_ITEMS and current.is_break:
        return TimerMode.FOCUS
    return current


def initial_clock(mode: TimerMode, activity: Activity) -> Clock:
    minutes = 0 if mode is TimerMode.COUNT_UP else activity.nominal_duration_minutes
    return Clock(
        mode=mode,
        status=TimerStatus.IDLE,
        remaining_or_elapsed_seconds=minutes * 60,
        configured_duration_minutes=minutes,
    )


def apply_start(clock: Clock) -> Clock:
    if clock.status not in (TimerStatus.IDLE, TimerStatus.PAUSED):
        return clock
    if clock.mode.counts_down and clock.remaining_or_elapsed_seconds == 0:
        return clock
    return clock.evolve(status=TimerStatus.RUNNING)


def apply_pause(clock: Clock) -> Clock:
    if clock.status is not TimerStatus.RUNNING:
        return clock
    return clock.evolve(status=TimerStatus.PAUSED)


def apply_reset(clock: Clock, activity: Activity) -> Clock:
    if clock.status is TimerStatus.IDLE:
        return clock
    return initial_clock(clock.mode, activity)


def apply_mode_change(clock: Clock, mode: TimerMode, activity: Activity) -> Clock:
    if clock.status is not TimerStatus.IDLE:
        return clock
    return initial_clock(mode, activity)


def apply_duration_edit(clock: Clock, minutes: int, max_minutes: int = MAX_MANUAL_MINUTES) -> Clock:
    """Rewrite the configured countdown length; anything out of range is ignored."""
    if clock.status is not TimerStatus.IDLE or not clock.mode.counts_down:
        return clock
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        return clock
    if minutes < 0 or minutes > max_minutes:
        return clock
    return clock.evolve(remaining_or_elapsed_seconds=minutes * 60, configured_duration_minutes=minutes)


def apply_tick(clock: Clock, session: SessionContext, now_millis: int) -> Transition:
    """Advance a running clock by one second.

    A countdown that reaches zero settles in FINISHED and, for recordable
    modes, emits a record stamped at the session start.
    """
    if clock.status is not TimerStatus.RUNNING:
        return Transition(clock)
    if not clock.mode.counts_down:
        return Transition(clock.evolve(remaining_or_elapsed_seconds=clock.remaining_or_elapsed_seconds + 1))

    remaining = max(clock.remaining_or_elapsed_seconds - 1, 0)
    if remaining > 0:
        return Transition(clock.evolve(remaining_or_elapsed_seconds=remaining))

    finished = clock.evolve(status=TimerStatus.FINISHED, remaining_or_elapsed_seconds=0)
    if not is_recordable(clock.mode, session.record_breaks):
        return Transition(finished)
    minutes = clock.configured_duration_minutes
    record = FocusRecord(
        id=new_record_id(),
        category=session.category,
        duration_minutes=minutes,
        timestamp_millis=now_millis - minutes * 60_000,
        activity_name=session.activity.name,
    )
    return Transition(finished, record)


def apply_finish_now(clock: Clock, session: SessionContext, now_millis: int) -> Transition:
    """Complete a count-up session early; under a minute is discarded."""
    if clock.mode is not TimerMode.COUNT_UP or clock.status not in (TimerStatus.RUNNING, TimerStatus.PAUSED):
        return Transition(clock)
    elapsed = clock.remaining_or_elapsed_seconds
    idle = clock.evolve(status=TimerStatus.IDLE, remaining_or_elapsed_seconds=0)
    minutes = elapsed // 60
    if minutes < 1:
        return Transition(idle)
    record = FocusRecord(
        id=new_record_id(),
        category=session.category,
        duration_minutes=minutes,
        timestamp_millis=now_millis - elapsed * 1000,
        activity_name=session.activity.name,
    )
    return Transition(idle, record)


def would_discard_active_session(clock: Clock) -> bool:
    return clock.status is TimerStatus.RUNNING


class TimerEngine:
    """Own the single session clock and schedule its one-second tick.

    Every state change goes through the pure ``apply_*`` functions above. A
    record emitted by a transition reaches the ledger before the new clock is
    published, so observers never see FINISHED without the matching record.
    """

    def __init__(
        self,
        ledger: "SessionLedger",
        scheduler: TickScheduler,
        activity: Optional[Activity] = None,
        mode: Optional[TimerMode] = None,
        category: Optional[str] = None,
        record_breaks: bool = False,
        max_manual_minutes: int = MAX_MANUAL_MINUTES,
        on_tick: Callable[[Clock], None] | None = None,
        on_finish: Callable[[Optional[FocusRecord]], None] | None = None,
    ) -> None:
        self.ledger = ledger
        self.scheduler = scheduler
        self.activity = activity or catalog.default_activity(mode or TimerMode.FOCUS)
        self.record_breaks = record_breaks
        self.max_manual_minutes = max_manual_minutes
        self.on_tick = on_tick
        self.on_finish = on_finish
        self.category = category if category in ledger.categories else ledger.categories[0]
        self._clock = initial_clock(mode_for_activity(self.activity, mode or TimerMode.FOCUS), self.activity)
        self._tick_handle: Optional[int] = None

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def status(self) -> TimerStatus:
        return self._clock.status

    @property
    def mode(self) -> TimerMode:
        return self._clock.mode

    @property
    def is_ticking(self) -> bool:
        return self._tick_handle is not None

    @property
    def display(self) -> str:
        return self._clock.formatted

    @property
    def status_text(self) -> str:
        status = self._clock.status
        if status is TimerStatus.IDLE:
            return "Ready to Cook"
        if status is TimerStatus.RUNNING:
            return "Enjoying a break" if self._clock.mode.is_break else "Simmering..."
        if status is TimerStatus.PAUSED:
            return "Low Fire..."
        return "Done!"

    def _context(self) -> SessionContext:
        return SessionContext(self.activity, self.category, self.record_breaks)

    def _schedule_tick(self) -> None:
        if self._tick_handle is None:
            self._tick_handle = self.scheduler.schedule_every(1, self._on_scheduled_tick)

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self.scheduler.cancel(self._tick_handle)
            self._tick_handle = None

    def _commit(self, transition: Transition) -> None:
        try:
            if transition.record is not None:
                self.ledger.append(transition.record)
        finally:
            if transition.clock.status is not TimerStatus.RUNNING:
                self._cancel_tick()
            self._clock = transition.clock

    def _on_scheduled_tick(self) -> None:
        previous = self._clock.status
        transition = apply_tick(self._clock, self._context(), self.scheduler.now_millis())
        self._commit(transition)
        if self.on_tick:
            try:
                self.on_tick(self._clock)
            except Exception:  # pragma: no cover
                LOGGER.exception("Timer tick callback failed")
        if previous is TimerStatus.RUNNING and self._clock.status is TimerStatus.FINISHED:
            LOGGER.info("Session finished: %s (%s min)", self.activity.name, self._clock.configured_duration_minutes)
            self._notify_finish(transition.record)

    def _notify_finish(self, record: Optional[FocusRecord]) -> None:
        if self.on_finish:
            try:
                self.on_finish(record)
            except Exception:  # pragma: no cover
                LOGGER.exception("Timer completion callback failed")

    def start(self) -> Clock:
        started = apply_start(self._clock)
        if started is self._clock:
            return self._clock
        self._clock = started
        self._schedule_tick()
        LOGGER.debug("Started %s timer at %s", started.mode.value, started.formatted)
        return self._clock

    def pause(self) -> Clock:
        self._commit(Transition(apply_pause(self._clock)))
        LOGGER.debug("Paused timer at %s", self._clock.formatted)
        return self._clock

    def reset(self) -> Clock:
        self._commit(Transition(apply_reset(self._clock, self.activity)))
        LOGGER.debug("Reset timer to %s", self._clock.formatted)
        return self._clock

    def finish_now(self) -> Optional[FocusRecord]:
        """Complete a count-up session early and return the record, if any."""
        transition = apply_finish_now(self._clock, self._context(), self.scheduler.now_millis())
        if transition.clock is self._clock:
            return None
        self._commit(transition)
        if transition.record is None:
            LOGGER.info("Discarded count-up session shorter than a minute")
        else:
            LOGGER.info("Session finished early: %s (%s min)", self.activity.name, transition.record.duration_minutes)
        self._notify_finish(transition.record)
        return transition.record

    def set_mode(self, mode: TimerMode) -> bool:
        if self._clock.status is not TimerStatus.IDLE:
            LOGGER.info("Ignored mode change to %s while %s", mode.value, self._clock.status.value)
            return False
        activity = catalog.default_activity(mode)
        self._clock = apply_mode_change(self._clock, mode, activity)
        self.activity = activity
        return True

    def select_activity(self, activity: Activity, confirmed: bool = False) -> Clock:
        if would_discard_active_session(self._clock) and not confirmed:
            raise ConfirmationRequired(f"A session is in progress; switching to {activity.name} discards it")
        self._cancel_tick()
        self.activity = activity
        self._clock = initial_clock(mode_for_activity(activity, self._clock.mode), activity)
        LOGGER.debug("Selected activity %s", activity.id)
        return self._clock

    def edit_duration(self, minutes: int) -> bool:
        edited = apply_duration_edit(self._clock, minutes, self.max_manual_minutes)
        if edited is self._clock:
            LOGGER.info("Rejected manual duration %r", minutes)
            return False
        self._clock = edited
        return True

    def set_category(self, name: str) -> None:
        if name not in self.ledger.categories:
            raise UnknownCategoryError(name)
        self.category = name
