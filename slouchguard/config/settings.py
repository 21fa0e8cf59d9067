"""
Engine configuration for SlouchGuard.

Collects the tunables spread across config.defaults into one validated
dataclass that the session controller and its collaborators read from.

Resolution order (highest first):
    1. Environment variables prefixed with SLOUCHGUARD_
    2. Keyword overrides passed to from_defaults()
    3. config.defaults

Example:
    config = EngineConfig.from_env()
    session = PostureSession(provider, scheduler, config=config)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from slouchguard.config.defaults import (
    POSTURE_THRESHOLDS,
    REFERENCE_MODE,
    TIMING_SETTINGS,
)

REFERENCE_MODES = ("baseline", "rolling")

# Environment variable -> (field name, converter)
_ENV_OVERRIDES = {
    "SLOUCHGUARD_REFERENCE_MODE": ("reference_mode", str),
    "SLOUCHGUARD_CALIBRATION_SECONDS": ("calibration_duration_ms", lambda v: int(float(v) * 1000)),
    "SLOUCHGUARD_CALIBRATION_TICK_MS": ("calibration_tick_ms", int),
    "SLOUCHGUARD_MONITORING_TICK_MS": ("monitoring_tick_ms", int),
    "SLOUCHGUARD_THRESHOLD": ("slouch_threshold", float),
    "SLOUCHGUARD_PERSISTENCE_FRAMES": ("persistence_frames", int),
    "SLOUCHGUARD_ALERT_COOLDOWN_MS": ("alert_cooldown_ms", int),
    "SLOUCHGUARD_MIN_VISIBILITY": ("min_landmark_visibility", float),
}


def debug_enabled() -> bool:
    """Runtime debug flag (enable detailed logs with SLOUCHGUARD_DEBUG=1)."""
    return os.getenv("SLOUCHGUARD_DEBUG", "0") in ("1", "true", "True")


@dataclass(frozen=True)
class EngineConfig:
    """
    Parameters controlling the posture classification engine.

    Attributes:
        reference_mode: "baseline" compares against the calibrated baseline,
                        "rolling" against the recent history average.
        slouch_threshold: Relative decrease of the posture metric above which
                          a single sample counts as slouching.
        persistence_frames: Consecutive slouching samples required before the
                            slouch is confirmed and an alert may fire.
        calibration_duration_ms: Length of the calibration window.
        calibration_tick_ms: Sampling cadence during calibration.
        monitoring_tick_ms: Classification cadence while monitoring.
        history_retention_ms: Retention window of the history buffer, also the
                              look-back used by rolling mode.
        alert_cooldown_ms: Minimum gap between two alert firings.
        min_landmark_visibility: Landmarks below this visibility count as
                                 missing (0 disables the check).
    """
    reference_mode: str = REFERENCE_MODE
    slouch_threshold: float = POSTURE_THRESHOLDS["slouch_decrease_threshold"]
    persistence_frames: int = POSTURE_THRESHOLDS["persistence_frames"]
    calibration_duration_ms: int = TIMING_SETTINGS["calibration_duration_ms"]
    calibration_tick_ms: int = TIMING_SETTINGS["calibration_tick_ms"]
    monitoring_tick_ms: int = TIMING_SETTINGS["monitoring_tick_ms"]
    history_retention_ms: int = TIMING_SETTINGS["history_retention_ms"]
    alert_cooldown_ms: int = TIMING_SETTINGS["alert_cooldown_ms"]
    min_landmark_visibility: float = POSTURE_THRESHOLDS["min_landmark_visibility"]

    def validate(self) -> "EngineConfig":
        if self.reference_mode not in REFERENCE_MODES:
            raise ValueError(f"reference_mode must be one of {REFERENCE_MODES}, got {self.reference_mode!r}")
        if not 0 < self.slouch_threshold < 1:
            raise ValueError("slouch_threshold must be in (0, 1)")
        if self.persistence_frames <= 0:
            raise ValueError("persistence_frames must be > 0")
        if self.calibration_duration_ms <= 0:
            raise ValueError("calibration_duration_ms must be > 0")
        if self.calibration_tick_ms <= 0:
            raise ValueError("calibration_tick_ms must be > 0")
        if self.monitoring_tick_ms <= 0:
            raise ValueError("monitoring_tick_ms must be > 0")
        if self.history_retention_ms <= 0:
            raise ValueError("history_retention_ms must be > 0")
        if self.alert_cooldown_ms < 0:
            raise ValueError("alert_cooldown_ms must be >= 0")
        if not 0 <= self.min_landmark_visibility <= 1:
            raise ValueError("min_landmark_visibility must be in [0, 1]")
        return self

    @property
    def is_rolling(self) -> bool:
        return self.reference_mode == "rolling"

    @classmethod
    def from_defaults(cls, **overrides: Any) -> "EngineConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**overrides).validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "EngineConfig":
        environ = os.environ if environ is None else environ
        config = cls.from_defaults(**overrides)
        env_values: Dict[str, Any] = {}
        for var, (name, convert) in _ENV_OVERRIDES.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            try:
                env_values[name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {var}: {raw!r}") from e
        return replace(config, **env_values).validate()
