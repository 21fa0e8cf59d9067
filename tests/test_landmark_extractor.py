from types import SimpleNamespace

import pytest

from conftest import make_detection
from slouchguard.core.landmark_extractor import (
    LandmarkExtractor,
    LandmarkPoint,
    LandmarkSample,
    extract_metric,
)


def _complete_sample(ts=0):
    return LandmarkSample(
        timestamp_ms=ts,
        left_ear=LandmarkPoint(0.4, 0.30),
        right_ear=LandmarkPoint(0.6, 0.32),
        left_shoulder=LandmarkPoint(0.35, 0.50),
        right_shoulder=LandmarkPoint(0.65, 0.56),
    )


def test_metric_is_mean_of_both_sides():
    assert extract_metric(_complete_sample()) == pytest.approx((0.20 + 0.24) / 2)


def test_metric_is_deterministic():
    sample = _complete_sample()
    assert extract_metric(sample) == extract_metric(sample)


def test_metric_uses_absolute_separation():
    sample = LandmarkSample(
        timestamp_ms=0,
        left_ear=LandmarkPoint(0.4, 0.60),
        right_ear=LandmarkPoint(0.6, 0.60),
        left_shoulder=LandmarkPoint(0.35, 0.50),
        right_shoulder=LandmarkPoint(0.65, 0.50),
    )
    assert extract_metric(sample) == pytest.approx(0.10)


@pytest.mark.parametrize("missing", ["left_ear", "right_ear", "left_shoulder", "right_shoulder"])
def test_any_missing_point_yields_none(missing):
    fields = dict(
        left_ear=LandmarkPoint(0.4, 0.3),
        right_ear=LandmarkPoint(0.6, 0.3),
        left_shoulder=LandmarkPoint(0.35, 0.5),
        right_shoulder=LandmarkPoint(0.65, 0.5),
    )
    fields[missing] = None
    sample = LandmarkSample(timestamp_ms=0, **fields)
    assert not sample.is_complete
    assert extract_metric(sample) is None


def test_to_sample_picks_mediapipe_indices():
    extractor = LandmarkExtractor()
    sample = extractor.to_sample(make_detection(0.18), timestamp_ms=1234)
    assert sample.timestamp_ms == 1234
    assert sample.is_complete
    assert extractor.extract_metric(sample) == pytest.approx(0.18)


def test_short_detection_is_incomplete():
    sample = LandmarkExtractor().to_sample(make_detection(0.2, size=10), timestamp_ms=0)
    assert sample.left_ear is not None
    assert sample.left_shoulder is None
    assert extract_metric(sample) is None


def test_none_entry_is_missing():
    sample = LandmarkExtractor().to_sample(make_detection(0.2, missing=(8,)), timestamp_ms=0)
    assert sample.right_ear is None
    assert extract_metric(sample) is None


def test_visibility_gate():
    detection = make_detection(0.2, visibility=0.3)
    assert LandmarkExtractor(min_visibility=0.0).to_sample(detection, 0).is_complete
    assert not LandmarkExtractor(min_visibility=0.5).to_sample(detection, 0).is_complete


def test_points_without_visibility_are_accepted():
    detection = [SimpleNamespace(x=0.5, y=0.5) for _ in range(13)]
    sample = LandmarkExtractor(min_visibility=0.9).to_sample(detection, 0)
    assert sample.is_complete
    assert sample.left_ear.visibility is None
