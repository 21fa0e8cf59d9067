import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("cv2")
pytest.importorskip("mediapipe")

from types import SimpleNamespace  # noqa: E402

from conftest import make_detection  # noqa: E402
from slouchguard.core.pose_detector import PoseDetector  # noqa: E402
from slouchguard.core.processing import FrameProcessor  # noqa: E402


class StubDetector:
    def __init__(self, landmarks):
        self.landmarks = landmarks
        self.seen = []

    def initialize(self):
        return True

    def detect(self, rgb_image, timestamp_ms):
        self.seen.append((rgb_image, timestamp_ms))
        return self.landmarks

    def cleanup(self):
        pass


def test_no_frame_means_no_subject():
    detector = StubDetector(make_detection())
    processor = FrameProcessor(detector)
    assert processor(100) is None
    assert detector.seen == []


def test_latest_frame_is_converted_to_rgb():
    detector = StubDetector(make_detection())
    processor = FrameProcessor(detector)
    old = np.zeros((4, 4, 3), dtype=np.uint8)
    bgr = np.zeros((4, 4, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue
    processor.submit_frame(old)
    processor.submit_frame(bgr)
    processor.submit_frame(None)
    landmarks = processor(500)
    assert landmarks is detector.landmarks
    rgb, ts = detector.seen[0]
    assert ts == 500
    assert (rgb[..., 2] == 255).all()
    assert processor.last_detection is landmarks


def test_primary_detection_only():
    first, second = make_detection(0.1), make_detection(0.2)
    result = SimpleNamespace(pose_landmarks=[first, second])
    assert PoseDetector._primary(result) is first
    assert PoseDetector._primary(SimpleNamespace(pose_landmarks=[])) is None
    assert PoseDetector._primary(None) is None


def test_timestamps_stay_monotonic():
    detector = PoseDetector(model_path="unused.task")
    assert detector._next_timestamp(100) == 100
    assert detector._next_timestamp(100) == 101
    assert detector._next_timestamp(50) == 102
    assert detector._next_timestamp(500) == 500


def test_uninitialized_detector_returns_nothing():
    detector = PoseDetector(model_path="unused.task", running_mode="LIVE_STREAM")
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    assert not detector.detect_async(frame, 0)
    assert detector.detect(frame, 0) is None
    assert not detector.has_pending_request


class RecordingLandmarker:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def detect_async(self, image, timestamp_ms):
        if self.fail:
            raise RuntimeError("graph error")
        self.calls.append(timestamp_ms)

    def close(self):
        pass


@pytest.fixture
def live_detector(monkeypatch):
    import slouchguard.core.pose_detector as pose_detector

    monkeypatch.setattr(pose_detector.mp, "Image", lambda **kwargs: kwargs["data"])
    detector = PoseDetector(model_path="unused.task", running_mode="LIVE_STREAM")
    detector.landmarker = RecordingLandmarker()
    return detector


def test_single_request_in_flight(live_detector):
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    landmarker = live_detector.landmarker

    assert live_detector.detect_async(frame, 0)
    assert live_detector.has_pending_request
    assert not live_detector.detect_async(frame, 10)
    assert landmarker.calls == [0]

    live_detector._result_callback(SimpleNamespace(pose_landmarks=[make_detection()]), None, 0)
    assert not live_detector.has_pending_request
    assert live_detector.detect_async(frame, 20)
    assert landmarker.calls == [0, 20]


def test_live_stream_detect_returns_latest_result_while_pending(live_detector):
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    landmarks = make_detection()
    assert live_detector.detect(frame, 0) is None
    live_detector._result_callback(SimpleNamespace(pose_landmarks=[landmarks]), None, 0)
    assert live_detector.detect(frame, 33) is landmarks
    assert live_detector.detect(frame, 66) is landmarks
    assert live_detector.landmarker.calls == [0, 33]


def test_failed_submit_clears_pending_request(live_detector):
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    live_detector.landmarker = RecordingLandmarker(fail=True)
    assert not live_detector.detect_async(frame, 0)
    assert not live_detector.has_pending_request
    live_detector.landmarker.fail = False
    assert live_detector.detect_async(frame, 10)
    assert live_detector.landmarker.calls == [10]
