"""
Posture Analyzer Module for SlouchGuard.

This module compares the live posture metric against a reference value and
debounces the per-sample verdict into the state reported to the UI.

Reference strategies (one classifier serves both):
    - BaselineReference: the calibrated baseline (calibrated mode).
    - RollingHistoryReference: the average of the history buffer from one
      retention window ago (rolling mode, no calibration needed).

Computation:
    decrease = (reference - current) / reference
    decrease > threshold          => SLOUCHING (instantaneous)
    reference <= 0 or missing     => GOOD / INDETERMINATE (never an error)

Debounce:
    Each instantaneous SLOUCHING increments consecutive_bad_frames, any GOOD
    resets it. Reported state is SLOUCHING_PENDING while the streak is shorter
    than persistence_frames and SLOUCHING_CONFIRMED once it reaches it.

Usage:
    analyzer = PostureAnalyzer(BaselineReference(calibration), history)
    result = analyzer.analyze(sample)   # sample is None when nobody is in frame

Author: SlouchGuard Engineering
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from slouchguard.core.calibration import CalibrationSession
from slouchguard.core.history import HistoryBuffer
from slouchguard.core.landmark_extractor import LandmarkSample, extract_metric

logger = logging.getLogger(__name__)


class InstantPosture(str, Enum):
    GOOD = "good"
    SLOUCHING = "slouching"


class ReportedState(str, Enum):
    GOOD = "good"
    SLOUCHING_PENDING = "slouching_pending"
    SLOUCHING_CONFIRMED = "slouching_confirmed"
    INDETERMINATE = "indeterminate"
    NO_SUBJECT = "no_subject"


def relative_decrease(current: float, reference: float) -> Optional[float]:
    """Fractional drop of current versus reference; None when reference <= 0."""
    if reference <= 0:
        return None
    return (reference - current) / reference


def classify(current: float, reference: float, threshold: float = 0.10) -> InstantPosture:
    decrease = relative_decrease(current, reference)
    if decrease is not None and decrease > threshold:
        return InstantPosture.SLOUCHING
    return InstantPosture.GOOD


# --------------- Reference sources ---------------

class BaselineReference:
    """Reference taken from the calibrated baseline."""

    name = "baseline"

    def __init__(self, calibration: CalibrationSession):
        self.calibration = calibration

    def reference_for(self, timestamp_ms: int) -> Optional[float]:
        return self.calibration.baseline


class RollingHistoryReference:
    """Reference taken from the history buffer, one retention window back."""

    name = "rolling"

    def __init__(self, history: HistoryBuffer):
        self.history = history

    def reference_for(self, timestamp_ms: int) -> Optional[float]:
        return self.history.average_before(timestamp_ms - self.history.retention_ms)


# --------------- Debounce ---------------

class SlouchDebouncer:
    """Turns noisy per-sample verdicts into a hysteretic reported state."""

    def __init__(self, persistence_frames: int = 10):
        if persistence_frames <= 0:
            raise ValueError("persistence_frames must be > 0")
        self.persistence_frames = persistence_frames
        self.consecutive_bad_frames = 0

    def update(self, posture: InstantPosture) -> ReportedState:
        if posture is InstantPosture.SLOUCHING:
            self.consecutive_bad_frames += 1
        else:
            self.consecutive_bad_frames = 0
        return self.current_state()

    def current_state(self) -> ReportedState:
        if self.consecutive_bad_frames >= self.persistence_frames:
            return ReportedState.SLOUCHING_CONFIRMED
        if self.consecutive_bad_frames > 0:
            return ReportedState.SLOUCHING_PENDING
        return ReportedState.GOOD

    def reset(self) -> None:
        self.consecutive_bad_frames = 0


@dataclass
class PostureResult:
    """Structured outcome of analysing one sample."""
    state: ReportedState
    timestamp_ms: Optional[int] = None
    metric: Optional[float] = None
    reference: Optional[float] = None
    decrease: Optional[float] = None
    consecutive_bad_frames: int = 0

    def as_dict(self) -> Dict[str, Any]:
        """Flatten the result for UI or logging."""
        return {
            "state": self.state.value,
            "timestamp_ms": self.timestamp_ms,
            "metric": self.metric,
            "reference": self.reference,
            "decrease": self.decrease,
            "consecutive_bad_frames": self.consecutive_bad_frames,
        }


class PostureAnalyzer:
    """
    Classifies samples against a reference source and debounces the verdicts.

    Every sample with a usable metric is appended to the history buffer after
    the reference has been read, regardless of the reference strategy, so the
    rolling reference never sees the sample it is judging.
    """

    def __init__(
        self,
        reference_source,
        history: HistoryBuffer,
        threshold: float = 0.10,
        persistence_frames: int = 10,
    ):
        self.reference_source = reference_source
        self.history = history
        self.threshold = threshold
        self.debouncer = SlouchDebouncer(persistence_frames)

    @property
    def consecutive_bad_frames(self) -> int:
        return self.debouncer.consecutive_bad_frames

    def analyze(self, sample: Optional[LandmarkSample]) -> PostureResult:
        """
        Analyze one sample. None means no subject in frame.
        """
        if sample is None:
            self.debouncer.reset()
            self.history.clear()
            return PostureResult(state=ReportedState.NO_SUBJECT)

        metric = extract_metric(sample)
        if metric is None:
            self.debouncer.reset()
            return PostureResult(state=ReportedState.INDETERMINATE, timestamp_ms=sample.timestamp_ms)

        ts = sample.timestamp_ms
        reference = self.reference_source.reference_for(ts)
        self.history.append(ts, metric)

        if reference is None:
            # rolling history still rebuilding, or no baseline yet
            self.debouncer.reset()
            return PostureResult(
                state=ReportedState.INDETERMINATE,
                timestamp_ms=ts,
                metric=metric,
            )

        posture = classify(metric, reference, self.threshold)
        state = self.debouncer.update(posture)
        result = PostureResult(
            state=state,
            timestamp_ms=ts,
            metric=metric,
            reference=reference,
            decrease=relative_decrease(metric, reference),
            consecutive_bad_frames=self.debouncer.consecutive_bad_frames,
        )
        logger.debug("Posture %s: %s", self.reference_source.name, result.as_dict())
        return result

    def reset(self) -> None:
        """Clear the debounce streak and history (recalibration)."""
        self.debouncer.reset()
        self.history.clear()
