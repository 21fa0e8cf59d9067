"""
Timer Manager Module for SlouchGuard.

Purpose:
    Replace free-running interval timers with an explicit, cooperative
    scheduler: at most one repeating task per role ("calibration",
    "monitoring"), polled from the caller's own loop (camera loop, WebRTC
    frame callback, or a test clock).

Key Concepts:
    - A "role" names a periodic job. Scheduling a role first cancels the task
      already registered under it, synchronously, so two loops of the same
      kind can never run side by side (no double-counted debounce, no double
      alerts).
    - poll(now) runs every task whose due time has passed, one at a time and
      to completion. A task is never re-entered while it is running.
    - Missed intervals collapse: a task that is late runs once, not once per
      missed interval. The next run stays on the original cadence (the next
      slot after now), so frame-loop lateness does not accumulate.

Usage Pattern:
    from slouchguard.monitoring.timer_manager import TimerManager

    timers = TimerManager()
    timers.schedule_repeating("monitoring", 3000, on_monitor_tick)

    # Inside the frame loop:
    timers.poll()

Design Decisions:
    - Time is integer milliseconds from an injectable clock; tests drive a
      ManualClock instead of sleeping.
    - A task that raises is logged and stays scheduled; one bad tick must not
      stop monitoring.

Author: SlouchGuard Engineering
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class ManualClock:
    """Deterministic clock for tests and offline replays."""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, delta_ms: int) -> int:
        self.now_ms += delta_ms
        return self.now_ms


@dataclass
class ScheduledTask:
    """
    State for a single repeating task.

    Attributes:
        role: Role the task is registered under.
        interval_ms: Period between runs.
        callback: Called with the poll timestamp.
        next_due_ms: Timestamp at or after which the next run happens.
        runs: Number of completed runs.
        running: True while the callback is executing.
        cancelled: Set when the task is cancelled or replaced.
    """
    role: str
    interval_ms: int
    callback: TickCallback
    next_due_ms: int
    runs: int = 0
    running: bool = False
    cancelled: bool = False


class TimerManager:
    """
    Cooperative scheduler with one cancellable repeating task per role.

    Public API:
        - schedule_repeating(role, interval_ms, callback, now=None) -> ScheduledTask
        - cancel(role) -> bool
        - is_scheduled(role) -> bool
        - poll(now=None) -> int   (number of tasks run)
        - get_state_snapshot(now=None) -> dict
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self.clock = clock or monotonic_ms
        self._tasks: Dict[str, ScheduledTask] = {}

    def now(self) -> int:
        return self.clock()

    # ---------------------------------------------------------------------
    # Scheduling
    # ---------------------------------------------------------------------
    def schedule_repeating(
        self,
        role: str,
        interval_ms: int,
        callback: TickCallback,
        now: Optional[int] = None,
    ) -> ScheduledTask:
        """
        Register callback to run every interval_ms under role, replacing any
        task already registered for that role. The first run is one interval
        from now.
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.cancel(role)
        now = self.now() if now is None else now
        task = ScheduledTask(role=role, interval_ms=interval_ms, callback=callback, next_due_ms=now + interval_ms)
        self._tasks[role] = task
        logger.debug("Scheduled %s every %d ms", role, interval_ms)
        return task

    def cancel(self, role: str) -> bool:
        task = self._tasks.pop(role, None)
        if task is None:
            return False
        task.cancelled = True
        logger.debug("Cancelled %s after %d runs", role, task.runs)
        return True

    def is_scheduled(self, role: str) -> bool:
        return role in self._tasks

    # ---------------------------------------------------------------------
    # Execution
    # ---------------------------------------------------------------------
    def poll(self, now: Optional[int] = None) -> int:
        """
        Run every due task once. Returns how many callbacks ran.
        """
        now = self.now() if now is None else now
        ran = 0
        for task in list(self._tasks.values()):
            if task.cancelled or task.running or now < task.next_due_ms:
                continue
            task.running = True
            try:
                task.callback(now)
            except Exception:
                logger.exception("Task %s failed", task.role)
            finally:
                task.running = False
            task.runs += 1
            ran += 1
            if not task.cancelled:
                missed = (now - task.next_due_ms) // task.interval_ms + 1
                task.next_due_ms += missed * task.interval_ms
        return ran

    # ---------------------------------------------------------------------
    # Introspection / Diagnostics
    # ---------------------------------------------------------------------
    def get_state_snapshot(self, now: Optional[int] = None) -> Dict[str, Dict[str, int]]:
        """
        Returns:
            {
              role: {"interval_ms": int, "runs": int, "due_in_ms": int},
              ...
            }
        """
        now = self.now() if now is None else now
        return {
            role: {
                "interval_ms": task.interval_ms,
                "runs": task.runs,
                "due_in_ms": max(0, task.next_due_ms - now),
            }
            for role, task in self._tasks.items()
        }

    def __repr__(self) -> str:
        parts = [f"{role}(interval={t.interval_ms}, runs={t.runs})" for role, t in self._tasks.items()]
        return f"TimerManager({', '.join(parts)})"
