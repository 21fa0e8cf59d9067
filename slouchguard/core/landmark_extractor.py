"""
Extract the ear and shoulder landmarks and reduce them to the posture metric
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class LandmarkPoint:
    """Normalized keypoint; only y feeds the posture metric."""
    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None


@dataclass(frozen=True)
class LandmarkSample:
    """Snapshot of the four keypoints the engine cares about."""
    timestamp_ms: int
    left_ear: Optional[LandmarkPoint] = None
    right_ear: Optional[LandmarkPoint] = None
    left_shoulder: Optional[LandmarkPoint] = None
    right_shoulder: Optional[LandmarkPoint] = None

    @property
    def is_complete(self) -> bool:
        return None not in (self.left_ear, self.right_ear, self.left_shoulder, self.right_shoulder)


class LandmarkExtractor:
    """Turn a pose-estimator detection into a LandmarkSample and a posture metric"""

    # MediaPipe pose landmark indices
    LEFT_EAR = 7
    RIGHT_EAR = 8
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12

    def __init__(self, min_visibility: float = 0.0):
        self.min_visibility = min_visibility

    def _point_at(self, detection: Sequence[Any], index: int) -> Optional[LandmarkPoint]:
        if index >= len(detection):
            return None
        raw = detection[index]
        if raw is None:
            return None
        try:
            visibility = getattr(raw, "visibility", None)
            if visibility is not None and visibility < self.min_visibility:
                return None
            return LandmarkPoint(
                x=float(raw.x),
                y=float(raw.y),
                z=getattr(raw, "z", None),
                visibility=visibility,
            )
        except (AttributeError, TypeError, ValueError):
            return None

    def to_sample(self, detection: Sequence[Any], timestamp_ms: int) -> LandmarkSample:
        """Pick the ear/shoulder points out of an ordered detection."""
        return LandmarkSample(
            timestamp_ms=timestamp_ms,
            left_ear=self._point_at(detection, self.LEFT_EAR),
            right_ear=self._point_at(detection, self.RIGHT_EAR),
            left_shoulder=self._point_at(detection, self.LEFT_SHOULDER),
            right_shoulder=self._point_at(detection, self.RIGHT_SHOULDER),
        )

    @staticmethod
    def extract_metric(sample: LandmarkSample) -> Optional[float]:
        """Average vertical ear-to-shoulder separation, or None for an incomplete sample"""
        if not sample.is_complete:
            return None
        left_dist = abs(sample.left_ear.y - sample.left_shoulder.y)
        right_dist = abs(sample.right_ear.y - sample.right_shoulder.y)
        return (left_dist + right_dist) / 2


def extract_metric(sample: LandmarkSample) -> Optional[float]:
    return LandmarkExtractor.extract_metric(sample)
