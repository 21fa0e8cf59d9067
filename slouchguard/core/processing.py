"""
Processing wrapper for SlouchGuard.

Bridges the camera loop and the posture session:
- The camera loop hands every captured BGR frame to submit_frame().
- The session calls the processor (as its SampleProvider) on each tick; the
  processor converts the most recent frame to RGB, runs the PoseDetector and
  returns the primary detection, or None when nobody is in frame.

Detection therefore runs at tick cadence, not camera frame rate, and there is
never more than one inference per tick.
"""

import logging
import threading
from typing import Any, Optional, Sequence

import cv2 as cv
import numpy as np

from slouchguard.core.pose_detector import PoseDetector

logger = logging.getLogger(__name__)


class FrameProcessor:
    """Latest-frame holder and SampleProvider for PostureSession"""

    def __init__(self, detector: Optional[PoseDetector] = None):
        self.detector = detector or PoseDetector()
        self._frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()  # frames may be submitted from a capture thread
        self.last_detection: Optional[Sequence[Any]] = None

    def initialize(self) -> bool:
        return self.detector.initialize()

    def submit_frame(self, bgr_frame: Optional[np.ndarray]) -> None:
        if bgr_frame is None:
            return
        with self._lock:
            self._frame = bgr_frame

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._frame

    def __call__(self, timestamp_ms: int) -> Optional[Sequence[Any]]:
        frame = self.latest_frame()
        if frame is None:
            return None
        try:
            rgb = cv.cvtColor(frame, cv.COLOR_BGR2RGB)
        except cv.error as e:
            logger.debug("BGR->RGB conversion failed: %s", e)
            return None
        landmarks = self.detector.detect(rgb, timestamp_ms)
        self.last_detection = landmarks
        if landmarks is None:
            logger.debug("No landmarks detected at %d ms", timestamp_ms)
        return landmarks

    def cleanup(self) -> None:
        self.detector.cleanup()
