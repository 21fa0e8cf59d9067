"""
Camera management and overlay rendering utilities
"""
import logging
from typing import Optional, Tuple

import cv2 as cv
import numpy as np

from slouchguard.config.defaults import CAMERA_SETTINGS

logger = logging.getLogger(__name__)

# Upper-body connections of the MediaPipe pose skeleton
POSE_CONNECTIONS = [
    # Face
    (0, 1), (1, 2), (2, 3), (3, 7), (0, 4), (4, 5), (5, 6), (6, 8), (9, 10),
    # Shoulders and arms
    (11, 12), (11, 13), (13, 15), (12, 14), (14, 16),
    # Torso
    (11, 23), (12, 24), (23, 24),
]


class CameraManager:
    """Manage camera operations for SlouchGuard"""

    def __init__(self, camera_id: Optional[int] = None):
        self.camera_id = CAMERA_SETTINGS['camera_id'] if camera_id is None else camera_id
        self.cap = None
        self.is_initialized = False

    def initialize(self) -> bool:
        """Initialize camera"""
        self.cap = cv.VideoCapture(self.camera_id)
        if not self.cap.isOpened():
            logger.error("Could not open camera %s", self.camera_id)
            return False
        self.cap.set(cv.CAP_PROP_FPS, CAMERA_SETTINGS['target_fps'])
        self.is_initialized = True
        return True

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read a frame from camera"""
        if not self.is_initialized or self.cap is None:
            return False, None
        ret, frame = self.cap.read()
        return ret, frame

    def release(self):
        """Release camera resources"""
        if self.cap:
            self.cap.release()
            self.cap = None
        self.is_initialized = False


def hex_to_bgr(color_hint: str) -> Tuple[int, int, int]:
    """'#RRGGBB' -> (B, G, R) for OpenCV"""
    value = color_hint.lstrip('#')
    if len(value) != 6:
        raise ValueError(f"Expected #RRGGBB colour, got {color_hint!r}")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def draw_overlay(image: np.ndarray, landmarks, color_hint: str, enabled: bool = True) -> np.ndarray:
    """Draw pose landmarks in the state colour; renders nothing when visualization is off"""
    if not enabled:
        return np.zeros_like(image)

    annotated_image = image.copy()
    if not landmarks:
        return annotated_image

    height, width = annotated_image.shape[:2]
    color = hex_to_bgr(color_hint)

    for start_idx, end_idx in POSE_CONNECTIONS:
        if start_idx < len(landmarks) and end_idx < len(landmarks):
            start_point = (int(landmarks[start_idx].x * width), int(landmarks[start_idx].y * height))
            end_point = (int(landmarks[end_idx].x * width), int(landmarks[end_idx].y * height))
            cv.line(annotated_image, start_point, end_point, color, 4)

    for landmark in landmarks[:25]:
        x = int(landmark.x * width)
        y = int(landmark.y * height)
        cv.circle(annotated_image, (x, y), 5, color, -1)

    return annotated_image


def draw_status(image: np.ndarray, text: str, color_hint: str) -> np.ndarray:
    """Status line in the top-left corner"""
    cv.rectangle(image, (0, 0), (image.shape[1], 36), (0, 0, 0), -1)
    cv.putText(image, text, (10, 25), cv.FONT_HERSHEY_SIMPLEX, 0.7, hex_to_bgr(color_hint), 2, cv.LINE_AA)
    return image
