"""
Calibration module for SlouchGuard.

Purpose:
    Establish the user's personal "good posture" baseline over a short, timed
    window (the user sits upright for a few seconds). The baseline becomes the
    reference the posture classifier measures relative decreases against.

Design Goals:
    - Timed, not frame-counted: samples are taken on a fixed tick cadence
      (1 Hz by default) driven by the scheduler, so frame-rate variance cannot
      starve calibration.
    - Passive: the caller owns the timer. It calls start() when the window
      opens and tick() on every calibration tick; tick() reports the outcome
      once the window has elapsed.
    - Re-entrant: start() while collecting discards the in-flight window.
    - Failure-safe: a window with zero usable samples reports failure and
      leaves any previous baseline untouched.

Typical Usage (driven by the session controller):
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    cal.start(now_ms)
    ...
    for every calibration tick:
        outcome = cal.tick(metric_or_none, now_ms)
        if outcome is not None:
            baseline = cal.baseline if outcome.succeeded else None
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ----------------------------
# Configuration Data Classes
# ----------------------------

@dataclass
class CalibrationConfig:
    """
    Parameters controlling calibration behavior.

    Attributes:
        duration_ms: Length of the calibration window in milliseconds.
        tick_ms: Sampling cadence. A tick that closes the window less than one
                 tick late still contributes its sample.
    """
    duration_ms: int = 3000
    tick_ms: int = 1000

    def validate(self):
        if self.duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        if self.tick_ms <= 0:
            raise ValueError("tick_ms must be > 0")


class CalibrationPhase(str, Enum):
    NOT_STARTED = "not_started"
    COLLECTING = "collecting"
    COMPLETE = "complete"


@dataclass
class CalibrationState:
    """
    Mutable state for one calibration window.
    Fields:
        started_at_ms: Timestamp when the window opened.
        samples: Accepted metric values, in arrival order.
        ticks: Number of ticks seen, including ones without a usable metric.
        phase: Current phase of the window.
    """
    started_at_ms: Optional[int] = None
    samples: List[float] = field(default_factory=list)
    ticks: int = 0
    phase: CalibrationPhase = CalibrationPhase.NOT_STARTED


@dataclass(frozen=True)
class CalibrationOutcome:
    """Result reported when a calibration window closes."""
    succeeded: bool
    baseline: Optional[float]
    sample_count: int
    finished_at_ms: int
    reason: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "baseline": self.baseline,
            "sample_count": self.sample_count,
            "finished_at_ms": self.finished_at_ms,
            "reason": self.reason,
        }


# ----------------------------
# Calibration Session
# ----------------------------

class CalibrationSession:
    """
    Accumulates metric samples during a timed window and computes the baseline.

    Public Methods:
        start(now_ms) -> None
        reset() -> None
        tick(metric, now_ms) -> Optional[CalibrationOutcome]
        seconds_remaining(now_ms) -> int
        get_progress(now_ms) -> float
        get_status(now_ms) -> dict

    The baseline survives across windows: it is overwritten by a successful
    window and kept as-is by a failed one.
    """

    def __init__(self, config: CalibrationConfig | None = None):
        self.config = config or CalibrationConfig()
        self.config.validate()
        self.state = CalibrationState()
        self.baseline: Optional[float] = None
        self.last_outcome: Optional[CalibrationOutcome] = None

    # ---- Lifecycle Control ----

    def start(self, now_ms: int) -> None:
        """Open a fresh window at now_ms, discarding any window in flight."""
        if self.is_collecting():
            logger.debug("Restarting calibration; dropping %d samples", len(self.state.samples))
        self.state = CalibrationState(started_at_ms=now_ms, phase=CalibrationPhase.COLLECTING)

    def reset(self) -> None:
        """Forget the window and the baseline (new monitoring session)."""
        self.state = CalibrationState()
        self.baseline = None
        self.last_outcome = None

    def is_started(self) -> bool:
        return self.state.started_at_ms is not None

    def is_collecting(self) -> bool:
        return self.state.phase is CalibrationPhase.COLLECTING

    def is_complete(self) -> bool:
        return self.state.phase is CalibrationPhase.COMPLETE

    # ---- Core Update Logic ----

    def tick(self, metric: Optional[float], now_ms: int) -> Optional[CalibrationOutcome]:
        """
        Process one calibration tick.

        A tick inside the window records the metric (if usable); so does the
        tick that closes it, unless it arrives a full tick late. Once the window
        has elapsed the session completes and the outcome is returned; until
        then None is returned. Ticks outside a collecting window are ignored.
        """
        if not self.is_collecting():
            return None

        self.state.ticks += 1
        elapsed = self._time_elapsed(now_ms)
        in_window = elapsed < self.config.duration_ms + self.config.tick_ms
        if in_window and self._is_usable_number(metric):
            self.state.samples.append(float(metric))

        if elapsed >= self.config.duration_ms:
            return self._finish(now_ms)
        return None

    def _finish(self, now_ms: int) -> CalibrationOutcome:
        samples = self.state.samples
        self.state.phase = CalibrationPhase.COMPLETE
        if samples:
            self.baseline = sum(samples) / len(samples)
            outcome = CalibrationOutcome(
                succeeded=True,
                baseline=self.baseline,
                sample_count=len(samples),
                finished_at_ms=now_ms,
            )
            logger.info("Calibration complete: %s (%d samples)", summarize_baseline(self.baseline), len(samples))
        else:
            outcome = CalibrationOutcome(
                succeeded=False,
                baseline=self.baseline,
                sample_count=0,
                finished_at_ms=now_ms,
                reason="no_samples",
            )
            logger.warning("Calibration failed: no usable samples in %d ticks", self.state.ticks)
        self.last_outcome = outcome
        return outcome

    # ---- Progress ----

    def _time_elapsed(self, now_ms: int) -> int:
        start = self.state.started_at_ms
        if start is None:
            return 0
        return now_ms - start

    def seconds_remaining(self, now_ms: int) -> int:
        if not self.is_collecting():
            return 0
        remaining_ms = self.config.duration_ms - self._time_elapsed(now_ms)
        return max(0, math.ceil(remaining_ms / 1000))

    def get_progress(self, now_ms: int) -> float:
        """Returns a float in [0, 1] for the time elapsed in the window."""
        if not self.is_started():
            return 0.0
        if self.is_complete():
            return 1.0
        return max(0.0, min(1.0, self._time_elapsed(now_ms) / self.config.duration_ms))

    def get_status(self, now_ms: int) -> Dict[str, Any]:
        """
        Calibration status for UI feedback.
        """
        if not self.is_started():
            return {"state": "not_started", "progress": 0.0}

        if self.is_complete():
            outcome = self.last_outcome
            return {
                "state": "complete" if outcome and outcome.succeeded else "failed",
                "progress": 1.0,
                "baseline": self.baseline,
            }

        return {
            "state": "active",
            "progress": self.get_progress(now_ms),
            "seconds_remaining": self.seconds_remaining(now_ms),
            "samples_total": len(self.state.samples),
        }

    # ---- Helpers ----

    @staticmethod
    def _is_usable_number(x) -> bool:
        return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def summarize_baseline(baseline: Optional[float]) -> str:
    """
    Human-friendly single-line summary for logging/diagnostics.
    """
    if baseline is None:
        return "Baseline: <not ready>"
    return f"Baseline: ear_shoulder_separation={baseline:.4f}"
