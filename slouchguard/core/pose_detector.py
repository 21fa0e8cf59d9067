"""
MediaPipe-based pose detection for SlouchGuard
"""
import os

# Suppress verbose C++ / framework logs
os.environ.setdefault("GLOG_minloglevel", "2")  # 0=INFO,1=WARNING,2=ERROR,3=FATAL
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")  # TensorFlow logging
os.environ.setdefault("MEDIAPIPE_DISABLE_GPU", "1")  # Force CPU inference

import logging
from typing import Any, Optional

import mediapipe as mp
import numpy as np

from slouchguard.config.defaults import MODEL_SETTINGS

logger = logging.getLogger(__name__)


class PoseDetector:
    """Single-person pose detection using MediaPipe (VIDEO, IMAGE and LIVE_STREAM modes)

    In LIVE_STREAM mode results arrive through a callback; at most one
    inference request is in flight at a time and frames submitted while one
    is outstanding are dropped.
    """

    def __init__(self, model_path: Optional[str] = None, running_mode: Optional[str] = None):
        self.model_path = model_path or MODEL_SETTINGS["model_path"]
        mode = running_mode or MODEL_SETTINGS.get("running_mode", "VIDEO")
        self.running_mode_str = mode.upper() if isinstance(mode, str) else "VIDEO"
        self.latest_result = None
        self.landmarker = None
        self._in_flight = False
        self._last_timestamp_ms = -1

        # MediaPipe classes
        self.BaseOptions = mp.tasks.BaseOptions
        self.PoseLandmarker = mp.tasks.vision.PoseLandmarker
        self.PoseLandmarkerOptions = mp.tasks.vision.PoseLandmarkerOptions
        self.VisionRunningMode = mp.tasks.vision.RunningMode

    def _result_callback(self, result, output_image, timestamp_ms):
        """Callback function to handle pose detection results"""
        self.latest_result = result
        self._in_flight = False

    def initialize(self) -> bool:
        """Initialize the pose landmarker"""
        try:
            mode = getattr(self.VisionRunningMode, self.running_mode_str)
            kwargs = dict(
                base_options=self.BaseOptions(model_asset_path=self.model_path),
                running_mode=mode,
                num_poses=1,
                min_pose_detection_confidence=MODEL_SETTINGS["min_pose_detection_confidence"],
                min_pose_presence_confidence=MODEL_SETTINGS["min_pose_presence_confidence"],
                min_tracking_confidence=MODEL_SETTINGS["min_tracking_confidence"],
                output_segmentation_masks=False,
            )
            if mode == self.VisionRunningMode.LIVE_STREAM:
                kwargs["result_callback"] = self._result_callback
            self.landmarker = self.PoseLandmarker.create_from_options(self.PoseLandmarkerOptions(**kwargs))
            logger.debug("PoseDetector initialized (mode=%s, model=%s)", self.running_mode_str, self.model_path)
            return True
        except Exception as e:
            logger.error("Failed to initialize pose detector: %s", e)
            return False

    def _next_timestamp(self, timestamp_ms: int) -> int:
        # MediaPipe rejects non-increasing timestamps in VIDEO / LIVE_STREAM mode
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        return ts

    def detect_async(self, rgb_image: np.ndarray, timestamp_ms: int) -> bool:
        """Submit a frame for asynchronous detection; False if one is already pending"""
        if self.landmarker is None or self._in_flight:
            return False
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
        self._in_flight = True
        try:
            self.landmarker.detect_async(mp_image, self._next_timestamp(timestamp_ms))
        except Exception as e:
            self._in_flight = False
            logger.debug("detect_async error: %s", e)
            return False
        return True

    def detect_video(self, rgb_image: np.ndarray, timestamp_ms: int) -> Optional[Any]:
        """Synchronous detection on a video frame (VIDEO mode)."""
        if self.landmarker is None:
            return None
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
        try:
            result = self.landmarker.detect_for_video(mp_image, self._next_timestamp(timestamp_ms))
        except Exception as e:
            logger.debug("detect_video error: %s", e)
            return None
        return self._primary(result)

    def detect_image(self, rgb_image: np.ndarray) -> Optional[Any]:
        """Synchronous detection on a single RGB image (IMAGE mode)."""
        if self.landmarker is None:
            return None
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
        try:
            result = self.landmarker.detect(mp_image)
        except Exception as e:
            logger.debug("detect_image error: %s", e)
            return None
        return self._primary(result)

    def detect(self, rgb_image: np.ndarray, timestamp_ms: int) -> Optional[Any]:
        """Detect with whichever call matches the running mode."""
        if self.running_mode_str == "LIVE_STREAM":
            self.detect_async(rgb_image, timestamp_ms)
            return self.get_latest_landmarks()
        if self.running_mode_str == "IMAGE":
            return self.detect_image(rgb_image)
        return self.detect_video(rgb_image, timestamp_ms)

    @staticmethod
    def _primary(result) -> Optional[Any]:
        if result and result.pose_landmarks:
            return result.pose_landmarks[0]  # single selected detection
        return None

    def get_latest_landmarks(self) -> Optional[Any]:
        """Get the latest pose landmarks (LIVE_STREAM mode)"""
        return self._primary(self.latest_result)

    @property
    def has_pending_request(self) -> bool:
        return self._in_flight

    def cleanup(self):
        """Clean up resources"""
        if self.landmarker:
            self.landmarker.close()
            self.landmarker = None
            self._in_flight = False
            logger.debug("PoseDetector cleaned up")
