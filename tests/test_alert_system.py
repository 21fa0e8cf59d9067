import pytest

from slouchguard.monitoring.alert_system import AlertSystem, create_default_alert_system


def test_fires_once_then_suppressed_until_cooldown_elapses():
    alerts = AlertSystem(messages={"slouching": "Sit straight"}, cooldowns={"slouching": 3000})
    fired = [bool(alerts.process(["slouching"], now_ms=ts)) for ts in range(0, 6100, 500)]
    # fires at 0, 3000 and 6000
    assert fired.count(True) == 3
    assert fired[0] and fired[6] and fired[12]


def test_event_payload():
    alerts = AlertSystem(messages={"slouching": "Sit straight"}, severities={"slouching": "warning"})
    (event,) = alerts.process(["slouching"], now_ms=42)
    assert event["condition"] == "slouching"
    assert event["message"] == "Sit straight"
    assert event["severity"] == "warning"
    assert event["timestamp_ms"] == 42
    assert event["sequence_id"] == 1


def test_unknown_condition_uses_name_and_default_cooldown():
    alerts = AlertSystem(messages={})
    (event,) = alerts.process(["mystery"], now_ms=0)
    assert event["message"] == "mystery"
    assert event["cooldown_ms"] == alerts.config.default_cooldown_ms


def test_condition_state_and_reset():
    alerts = AlertSystem(messages={}, cooldowns={"slouching": 3000})
    alerts.process(["slouching"], now_ms=1000)
    state = alerts.get_condition_state("slouching", now_ms=2000)
    assert state["cooldown_remaining_ms"] == 2000
    assert alerts.is_cooling_down("slouching", 2000)
    alerts.reset_condition("slouching")
    assert not alerts.is_cooling_down("slouching", 2000)


def test_set_cooldown_validates():
    alerts = AlertSystem(messages={})
    with pytest.raises(ValueError):
        alerts.set_cooldown("slouching", -1)


def test_default_factory_uses_cooldown():
    alerts = create_default_alert_system(cooldown_ms=1234)
    (event,) = alerts.process(["slouching"], now_ms=0)
    assert event["cooldown_ms"] == 1234
    assert event["message"] == "Slouching! Sit straight!"
