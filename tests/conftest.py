from types import SimpleNamespace

import pytest

from slouchguard.config.settings import EngineConfig
from slouchguard.core.session import PostureSession
from slouchguard.monitoring.timer_manager import ManualClock, TimerManager

EAR_Y = 0.30


def make_detection(metric=0.20, missing=(), visibility=0.99, size=33):
    """Ordered MediaPipe-style landmark list whose posture metric equals `metric`."""
    points = [SimpleNamespace(x=0.5, y=0.5, z=0.0, visibility=visibility) for _ in range(size)]
    for idx in (7, 8):
        if idx < size:
            points[idx] = SimpleNamespace(x=0.45, y=EAR_Y, z=0.0, visibility=visibility)
    for idx in (11, 12):
        if idx < size:
            points[idx] = SimpleNamespace(x=0.40, y=EAR_Y + metric, z=0.0, visibility=visibility)
    for idx in missing:
        points[idx] = None
    return points


class FakeFeed:
    """Stands in for the pose estimator: returns whatever detection is set."""

    def __init__(self, detection=None):
        self.detection = detection
        self.calls = []

    def set_metric(self, metric, **kwargs):
        self.detection = make_detection(metric, **kwargs)

    def __call__(self, timestamp_ms):
        self.calls.append(timestamp_ms)
        return self.detection


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def timers(clock):
    return TimerManager(clock)


@pytest.fixture
def feed():
    return FakeFeed(make_detection(0.20))


@pytest.fixture
def test_config():
    return EngineConfig.from_defaults(
        calibration_duration_ms=3000,
        calibration_tick_ms=1000,
        monitoring_tick_ms=100,
        alert_cooldown_ms=3000,
    )


@pytest.fixture
def session(feed, timers, test_config):
    return PostureSession(feed, timers, config=test_config)


def run_for(session, clock, duration_ms, step_ms=100):
    """Advance the clock in steps, polling the session after each one."""
    elapsed = 0
    while elapsed < duration_ms:
        clock.advance(step_ms)
        session.poll()
        elapsed += step_ms
