import pytest

from slouchguard.core.calibration import (
    CalibrationConfig,
    CalibrationPhase,
    CalibrationSession,
    summarize_baseline,
)


def _run_window(cal, values, start=0, tick=1000):
    cal.start(start)
    outcome = None
    for i, value in enumerate(values, start=1):
        outcome = cal.tick(value, start + i * tick)
    return outcome


def test_baseline_is_mean_of_samples():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    outcome = _run_window(cal, [0.20, 0.22, 0.24])
    assert outcome.succeeded
    assert outcome.sample_count == 3
    assert cal.baseline == pytest.approx(0.22)
    assert cal.is_complete()


def test_ticks_before_expiry_return_none():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    cal.start(0)
    assert cal.tick(0.2, 1000) is None
    assert cal.tick(0.2, 2000) is None
    assert cal.tick(0.2, 3000) is not None


def test_missing_metrics_are_not_accumulated():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    outcome = _run_window(cal, [None, 0.30, float("nan")])
    assert outcome.sample_count == 1
    assert cal.baseline == pytest.approx(0.30)


def test_empty_window_fails_and_keeps_previous_baseline():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    _run_window(cal, [0.2, 0.2, 0.2])
    outcome = _run_window(cal, [None, None, None], start=10_000)
    assert not outcome.succeeded
    assert outcome.reason == "no_samples"
    assert cal.baseline == pytest.approx(0.2)
    assert cal.get_status(20_000)["state"] == "failed"


def test_first_window_empty_leaves_baseline_undefined():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    outcome = _run_window(cal, [None, None, None])
    assert not outcome.succeeded
    assert cal.baseline is None


def test_restart_discards_samples_in_flight():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    cal.start(0)
    cal.tick(0.90, 1000)
    cal.start(1500)
    assert cal.state.samples == []
    for ts in (2500, 3500, 4500):
        outcome = cal.tick(0.20, ts)
    assert outcome.succeeded
    assert cal.baseline == pytest.approx(0.20)


def test_late_tick_finishes_without_sampling():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    cal.start(0)
    cal.tick(0.2, 1000)
    outcome = cal.tick(0.9, 4200)
    assert outcome.succeeded
    assert cal.baseline == pytest.approx(0.2)


def test_ticks_after_completion_are_ignored():
    cal = CalibrationSession(CalibrationConfig(duration_ms=1000))
    _run_window(cal, [0.2])
    assert cal.tick(0.5, 5000) is None
    assert cal.baseline == pytest.approx(0.2)


def test_seconds_remaining_and_progress():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000))
    assert cal.seconds_remaining(0) == 0
    cal.start(0)
    assert cal.state.phase is CalibrationPhase.COLLECTING
    assert cal.seconds_remaining(0) == 3
    assert cal.seconds_remaining(1500) == 2
    assert cal.get_progress(1500) == pytest.approx(0.5)
    assert cal.get_status(1500)["state"] == "active"


def test_reset_forgets_baseline():
    cal = CalibrationSession(CalibrationConfig(duration_ms=1000))
    _run_window(cal, [0.2])
    cal.reset()
    assert cal.baseline is None
    assert not cal.is_started()


def test_invalid_duration():
    with pytest.raises(ValueError):
        CalibrationSession(CalibrationConfig(duration_ms=0))


def test_summarize_baseline():
    assert summarize_baseline(None) == "Baseline: <not ready>"
    assert "0.2000" in summarize_baseline(0.2)


def test_slightly_late_closing_tick_still_samples():
    cal = CalibrationSession(CalibrationConfig(duration_ms=3000, tick_ms=1000))
    cal.start(0)
    cal.tick(0.20, 1023)
    cal.tick(0.20, 2013)
    outcome = cal.tick(0.26, 3003)
    assert outcome.sample_count == 3
    assert cal.baseline == pytest.approx(0.22)


def test_invalid_tick():
    with pytest.raises(ValueError):
        CalibrationSession(CalibrationConfig(tick_ms=0))
