"""Periodic callback sources used to drive the session clock."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

LOGGER = logging.getLogger(__name__)


@dataclass
class _Job:
    interval: float
    callback: Callable[[], None]
    next_due: float


class ManualScheduler:
    """Scheduler over simulated time.

    Nothing fires until :meth:`advance` is called, which makes timer behaviour
    reproducible in tests and replays. Callbacks run on the caller's stack, so
    an exception raised by a callback propagates out of ``advance``.
    """

    def __init__(self, start_millis: int = 0) -> None:
        self._now_ms = int(start_millis)
        self._jobs: Dict[int, _Job] = {}
        self._next_handle = 1

    def now_millis(self) -> int:
        return self._now_ms

    def schedule_every(self, interval: float, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        interval_ms = interval * 1000
        self._jobs[handle] = _Job(interval_ms, callback, self._now_ms + interval_ms)
        return handle

    def cancel(self, handle: int) -> None:
        self._jobs.pop(handle, None)

    @property
    def active_count(self) -> int:
        return len(self._jobs)

    def advance(self, seconds: float) -> None:
        target = self._now_ms + seconds * 1000
        while True:
            due = [(job.next_due, handle) for handle, job in self._jobs.items() if job.next_due <= target]
            if not due:
                break
            next_due, handle = min(due)
            job = self._jobs[handle]
            self._now_ms = int(next_due)
            job.next_due += job.interval
            job.callback()
        self._now_ms = int(target)


class BlockingScheduler:
    """Runs periodic callbacks on the calling thread using wall-clock time."""

    def __init__(self) -> None:
        self._jobs: Dict[int, _Job] = {}
        self._next_handle = 1
        self._stop_event = threading.Event()

    def now_millis(self) -> int:
        return int(time.time() * 1000)

    def schedule_every(self, interval: float, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._jobs[handle] = _Job(interval, callback, time.monotonic() + interval)
        return handle

    def cancel(self, handle: int) -> None:
        self._jobs.pop(handle, None)

    @property
    def active_count(self) -> int:
        return len(self._jobs)

    def stop(self) -> None:
        self._stop_event.set()

    def run_until(self, predicate: Optional[Callable[[], bool]] = None) -> None:
        """Dispatch due callbacks until no job is left, ``stop`` is called or ``predicate`` holds."""
        self._stop_event.clear()
        while self._jobs and not self._stop_event.is_set():
            if predicate is not None and predicate():
                return
            next_due = min(job.next_due for job in self._jobs.values())
            if self._stop_event.wait(max(0.0, next_due - time.monotonic())):
                return
            now = time.monotonic()
            for handle in sorted(self._jobs):
                job = self._jobs.get(handle)
                if job is None or job.next_due > now:
                    continue
                job.next_due += job.interval
                try:
                    job.callback()
                except Exception:  # pragma: no cover
                    LOGGER.exception("Scheduled callback %s failed", handle)
