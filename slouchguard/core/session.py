"""
Session controller for SlouchGuard.

Owns every piece of mutable engine state (baseline, history buffer, debounce
counter, alert guard, session state) for one monitoring session and exposes
the operator controls:

    start()                 camera is ready: reset, then calibrate
    pause() / resume()      MONITORING <-> PAUSED, idempotent
    recalibrate()           cancel running timers, calibrate from scratch
    toggle_visualization()  cosmetic flag forwarded to renderers
    stop()                  cancel everything, back to IDLE

Lifecycle:
    IDLE -> CALIBRATING -> MONITORING <-> PAUSED
    recalibrate() from MONITORING / PAUSED (or IDLE after a failed
    calibration) goes back to CALIBRATING. In rolling mode there is no
    calibration: start() and recalibrate() go straight to MONITORING.

Ticks come from a TimerManager with one task per role, so there is never more
than one calibration loop or one monitoring loop alive. Consumers register
listeners and only ever read what is emitted:

    session.on_tick(lambda result: ...)              # TickResult
    session.on_calibration_progress(lambda p: ...)   # CalibrationProgress
    session.on_calibration_finished(lambda o: ...)   # CalibrationOutcome
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from slouchguard.config.defaults import ALERT_MESSAGES, COLOR_HINTS
from slouchguard.config.settings import EngineConfig
from slouchguard.core.calibration import CalibrationConfig, CalibrationOutcome, CalibrationSession
from slouchguard.core.history import HistoryBuffer
from slouchguard.core.landmark_extractor import LandmarkExtractor, LandmarkSample, extract_metric
from slouchguard.core.posture_analyzer import (
    BaselineReference,
    PostureAnalyzer,
    ReportedState,
    RollingHistoryReference,
)
from slouchguard.monitoring.alert_system import AlertSystem, create_default_alert_system
from slouchguard.monitoring.timer_manager import TimerManager

logger = logging.getLogger(__name__)

# Called with the tick timestamp; returns the primary detection (ordered
# landmark list) or None when nobody is in frame.
SampleProvider = Callable[[int], Optional[Sequence[Any]]]

_STATE_MESSAGES = {
    ReportedState.GOOD: ALERT_MESSAGES["good_posture"],
    ReportedState.SLOUCHING_PENDING: ALERT_MESSAGES["slouching_pending"],
    ReportedState.SLOUCHING_CONFIRMED: ALERT_MESSAGES["slouching"],
    ReportedState.INDETERMINATE: ALERT_MESSAGES["indeterminate"],
    ReportedState.NO_SUBJECT: ALERT_MESSAGES["no_subject"],
}


class SessionState(str, Enum):
    IDLE = "idle"
    CALIBRATING = "calibrating"
    MONITORING = "monitoring"
    PAUSED = "paused"


@dataclass(frozen=True)
class TickResult:
    """What one monitoring tick hands to renderers and the audio layer."""
    state: ReportedState
    color_hint: str
    should_alert: bool
    timestamp_ms: int
    message: str
    visualization_enabled: bool
    metric: Optional[float] = None
    reference: Optional[float] = None
    decrease: Optional[float] = None
    consecutive_bad_frames: int = 0
    alert: Optional[Dict[str, Any]] = None
    detection: Optional[Sequence[Any]] = field(default=None, repr=False, compare=False)

    def as_tuple(self) -> Tuple[ReportedState, str, bool]:
        return self.state, self.color_hint, self.should_alert

    def as_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "color_hint": self.color_hint,
            "should_alert": self.should_alert,
            "timestamp_ms": self.timestamp_ms,
            "message": self.message,
            "metric": self.metric,
            "reference": self.reference,
            "decrease": self.decrease,
            "consecutive_bad_frames": self.consecutive_bad_frames,
        }


@dataclass(frozen=True)
class CalibrationProgress:
    seconds_remaining: int
    samples: int
    timestamp_ms: int
    visualization_enabled: bool
    color_hint: str = COLOR_HINTS["calibrating"]
    detection: Optional[Sequence[Any]] = field(default=None, repr=False, compare=False)

    @property
    def message(self) -> str:
        return f"Calibrating good posture... {self.seconds_remaining}s left."


class PostureSession:
    """Single-threaded posture monitoring session."""

    CALIBRATION_ROLE = "calibration"
    MONITORING_ROLE = "monitoring"

    def __init__(
        self,
        provider: SampleProvider,
        timers: Optional[TimerManager] = None,
        config: Optional[EngineConfig] = None,
        alert_system: Optional[AlertSystem] = None,
    ):
        self.config = (config or EngineConfig()).validate()
        self.provider = provider
        self.timers = timers or TimerManager()

        self.extractor = LandmarkExtractor(self.config.min_landmark_visibility)
        self.calibration = CalibrationSession(
            CalibrationConfig(
                duration_ms=self.config.calibration_duration_ms,
                tick_ms=self.config.calibration_tick_ms,
            )
        )
        self.history = HistoryBuffer(self.config.history_retention_ms)
        if self.config.is_rolling:
            reference = RollingHistoryReference(self.history)
        else:
            reference = BaselineReference(self.calibration)
        self.analyzer = PostureAnalyzer(
            reference,
            self.history,
            threshold=self.config.slouch_threshold,
            persistence_frames=self.config.persistence_frames,
        )
        self.alert_system = alert_system or create_default_alert_system(self.config.alert_cooldown_ms)

        self.state = SessionState.IDLE
        self.visualization_enabled = True
        self.calibration_failed = False
        self.last_result: Optional[TickResult] = None
        self.last_progress: Optional[CalibrationProgress] = None

        self._tick_listeners: List[Callable[[TickResult], None]] = []
        self._progress_listeners: List[Callable[[CalibrationProgress], None]] = []
        self._calibration_listeners: List[Callable[[CalibrationOutcome], None]] = []

    # ---- Listeners ----

    def on_tick(self, listener: Callable[[TickResult], None]) -> None:
        self._tick_listeners.append(listener)

    def on_calibration_progress(self, listener: Callable[[CalibrationProgress], None]) -> None:
        self._progress_listeners.append(listener)

    def on_calibration_finished(self, listener: Callable[[CalibrationOutcome], None]) -> None:
        self._calibration_listeners.append(listener)

    # ---- Properties ----

    @property
    def baseline(self) -> Optional[float]:
        return self.calibration.baseline

    @property
    def consecutive_bad_frames(self) -> int:
        return self.analyzer.consecutive_bad_frames

    # ---- Controls ----

    def start(self) -> None:
        """Camera is ready: clear all per-session state and begin."""
        self._cancel_tasks()
        self.calibration.reset()
        self.analyzer.reset()
        self.alert_system.clear_history()
        self.calibration_failed = False
        self.last_result = None
        self.last_progress = None
        logger.info("Session started (%s mode)", self.config.reference_mode)
        if self.config.is_rolling:
            self._enter_monitoring()
        else:
            self._begin_calibration()

    def pause(self) -> bool:
        if self.state is not SessionState.MONITORING:
            logger.debug("pause() ignored in state %s", self.state.value)
            return False
        self.timers.cancel(self.MONITORING_ROLE)
        self.state = SessionState.PAUSED
        logger.info(ALERT_MESSAGES["paused"])
        return True

    def resume(self) -> bool:
        if self.state is not SessionState.PAUSED:
            logger.debug("resume() ignored in state %s", self.state.value)
            return False
        logger.info(ALERT_MESSAGES["resumed"])
        self._enter_monitoring()
        return True

    def recalibrate(self) -> bool:
        if self.state is SessionState.IDLE and not self.calibration_failed:
            logger.warning("recalibrate() ignored: session not started")
            return False
        self._cancel_tasks()
        if self.config.is_rolling:
            self.analyzer.reset()
            self._enter_monitoring()
        else:
            self._begin_calibration()
        return True

    def toggle_visualization(self) -> bool:
        self.visualization_enabled = not self.visualization_enabled
        return self.visualization_enabled

    def stop(self) -> None:
        self._cancel_tasks()
        self.state = SessionState.IDLE
        logger.info("Session stopped")

    def poll(self, now_ms: Optional[int] = None) -> int:
        """Run whichever ticks are due; call this from the frame loop."""
        return self.timers.poll(now_ms)

    # ---- Calibration ----

    def _begin_calibration(self) -> None:
        self.timers.cancel(self.MONITORING_ROLE)
        self.analyzer.reset()
        now = self.timers.now()
        self.calibration.start(now)
        self.state = SessionState.CALIBRATING
        self.timers.schedule_repeating(
            self.CALIBRATION_ROLE, self.config.calibration_tick_ms, self._on_calibration_tick, now
        )
        logger.info("%s (%d ms)", ALERT_MESSAGES["calibration_instruction"], self.config.calibration_duration_ms)
        self._emit_progress(now, None)

    def _on_calibration_tick(self, now_ms: int) -> None:
        if self.state is not SessionState.CALIBRATING:
            return
        detection, sample = self._read_sample(now_ms)
        metric = extract_metric(sample) if sample is not None else None
        outcome = self.calibration.tick(metric, now_ms)
        if outcome is None:
            self._emit_progress(now_ms, detection)
            return

        self.timers.cancel(self.CALIBRATION_ROLE)
        if outcome.succeeded:
            self.calibration_failed = False
            self._enter_monitoring(now_ms)
        else:
            self.calibration_failed = True
            self.state = SessionState.IDLE
            logger.warning(ALERT_MESSAGES["calibration_failed"])
        for listener in self._calibration_listeners:
            listener(outcome)

    def _emit_progress(self, now_ms: int, detection) -> None:
        progress = CalibrationProgress(
            seconds_remaining=self.calibration.seconds_remaining(now_ms),
            samples=len(self.calibration.state.samples),
            timestamp_ms=now_ms,
            visualization_enabled=self.visualization_enabled,
            detection=detection,
        )
        self.last_progress = progress
        for listener in self._progress_listeners:
            listener(progress)

    # ---- Monitoring ----

    def _enter_monitoring(self, now_ms: Optional[int] = None) -> None:
        self.analyzer.debouncer.reset()
        self.state = SessionState.MONITORING
        self.timers.schedule_repeating(
            self.MONITORING_ROLE, self.config.monitoring_tick_ms, self._on_monitoring_tick, now_ms
        )

    def _on_monitoring_tick(self, now_ms: int) -> None:
        if self.state is not SessionState.MONITORING:
            return
        detection, sample = self._read_sample(now_ms)
        posture = self.analyzer.analyze(sample)

        alert = None
        if posture.state is ReportedState.SLOUCHING_CONFIRMED:
            events = self.alert_system.process(["slouching"], now_ms)
            alert = events[0] if events else None

        result = TickResult(
            state=posture.state,
            color_hint=COLOR_HINTS[posture.state.value],
            should_alert=alert is not None,
            timestamp_ms=now_ms,
            message=_STATE_MESSAGES[posture.state],
            visualization_enabled=self.visualization_enabled,
            metric=posture.metric,
            reference=posture.reference,
            decrease=posture.decrease,
            consecutive_bad_frames=posture.consecutive_bad_frames,
            alert=alert,
            detection=detection,
        )
        self.last_result = result
        for listener in self._tick_listeners:
            listener(result)

    # ---- Helpers ----

    def _read_sample(self, now_ms: int) -> Tuple[Optional[Sequence[Any]], Optional[LandmarkSample]]:
        detection = self.provider(now_ms)
        if not detection:
            return None, None
        return detection, self.extractor.to_sample(detection, now_ms)

    def _cancel_tasks(self) -> None:
        self.timers.cancel(self.CALIBRATION_ROLE)
        self.timers.cancel(self.MONITORING_ROLE)

    def get_status(self) -> Dict[str, Any]:
        """Snapshot for status panels and debugging."""
        now = self.timers.now()
        last_alert = self.alert_system.last_event
        return {
            "state": self.state.value,
            "reference_mode": self.config.reference_mode,
            "baseline": self.baseline,
            "calibration": self.calibration.get_status(now),
            "calibration_failed": self.calibration_failed,
            "history_length": len(self.history),
            "consecutive_bad_frames": self.consecutive_bad_frames,
            "visualization_enabled": self.visualization_enabled,
            "last_alert": last_alert.as_dict() if last_alert else None,
            "timers": self.timers.get_state_snapshot(now),
        }

    def __repr__(self) -> str:
        return f"PostureSession(state={self.state.value}, mode={self.config.reference_mode}, baseline={self.baseline})"
