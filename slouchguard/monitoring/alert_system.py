"""
Alert System Module for SlouchGuard.

Purpose:
    Turn confirmed posture conditions (currently only "slouching") into
    user-facing alert events, rate limited by a per-condition cooldown.

Separation of Concerns:
    - The posture analyzer's debounce decides WHEN a slouch is confirmed.
    - The AlertSystem decides WHETHER an alert fires now. Once a condition
      fires, it is suppressed for its cooldown window no matter how long the
      confirmed state lasts; the first confirmed tick after the window fires
      again.
    - The audio layer may apply its own playback limit on top; the two are
      independent.

Core Concepts:
    - Each condition has a message, a severity and a cooldown (ms).
    - The guard is a plain "blocked until" timestamp per condition: a boolean
      with a timer, not a queue. Suppressed triggers are dropped.

Example:
    alert_system = AlertSystem(
        messages={"slouching": "Slouching! Sit straight!"},
        cooldowns={"slouching": 3000},
    )
    alerts = alert_system.process(["slouching"], now_ms=clock())

Returned alert object format:
    {
        "condition": "slouching",
        "message": "Slouching! Sit straight!",
        "severity": "warning",
        "timestamp_ms": 123456,
        "cooldown_ms": 3000,
        "sequence_id": 7
    }

Thread-Safety:
    - Not thread-safe (owned by the single-threaded session controller).

Author: SlouchGuard Engineering
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Data Classes
# ---------------------------------------------------------

@dataclass
class AlertConfig:
    """
    Global configuration for alert governance.

    Attributes:
        default_cooldown_ms: Fallback cooldown if a condition lacks a specific one.
    """
    default_cooldown_ms: int = 3000


@dataclass
class AlertEvent:
    """
    Structured alert emitted by the system.
    """
    condition: str
    message: str
    severity: str
    timestamp_ms: int
    cooldown_ms: int
    sequence_id: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "condition": self.condition,
            "message": self.message,
            "severity": self.severity,
            "timestamp_ms": self.timestamp_ms,
            "cooldown_ms": self.cooldown_ms,
            "sequence_id": self.sequence_id,
        }


# ---------------------------------------------------------
# Core Alert System
# ---------------------------------------------------------

class AlertSystem:
    """
    Alert system applying per-condition cooldown guards.

    Parameters:
        messages: Mapping condition -> message string.
        severities: Mapping condition -> severity token ("info", "warning", ...).
        cooldowns: Mapping condition -> cooldown milliseconds.
        config: AlertConfig object.

    Public Methods:
        process(triggers, now_ms) -> List[dict]
        is_cooling_down(condition, now_ms) -> bool
        get_condition_state(condition, now_ms) -> dict
    """

    def __init__(
        self,
        messages: Dict[str, str],
        severities: Optional[Dict[str, str]] = None,
        cooldowns: Optional[Dict[str, int]] = None,
        config: Optional[AlertConfig] = None,
    ):
        self.messages = dict(messages)
        self.severities = dict(severities) if severities else {}
        self.cooldowns = dict(cooldowns) if cooldowns else {}
        self.config = config or AlertConfig()

        # Internal tracking
        self._blocked_until_ms: Dict[str, int] = {}
        self._sequence_counter: int = 0
        self.last_event: Optional[AlertEvent] = None

    # -----------------------------------------------------
    # Public API
    # -----------------------------------------------------

    def process(self, triggers: Iterable[str], now_ms: int) -> List[Dict[str, Any]]:
        """
        Given triggered condition names, return alert event dicts for the ones
        whose cooldown guard is open, and close the guard behind them.
        """
        emitted: List[AlertEvent] = []

        for cond in triggers:
            if self.is_cooling_down(cond, now_ms):
                continue

            cooldown = self._cooldown_for(cond)
            self._sequence_counter += 1
            event = AlertEvent(
                condition=cond,
                message=self.messages.get(cond, cond),
                severity=self.severities.get(cond, "warning"),
                timestamp_ms=now_ms,
                cooldown_ms=cooldown,
                sequence_id=self._sequence_counter,
            )
            emitted.append(event)
            self._blocked_until_ms[cond] = now_ms + cooldown
            self.last_event = event
            logger.info("Alert %s #%d: %s", cond, event.sequence_id, event.message)

        return [e.as_dict() for e in emitted]

    def is_cooling_down(self, condition: str, now_ms: int) -> bool:
        until = self._blocked_until_ms.get(condition)
        return until is not None and now_ms < until

    def get_condition_state(self, condition: str, now_ms: int) -> Dict[str, Any]:
        """
        Retrieve diagnostic info for a condition.
        """
        until = self._blocked_until_ms.get(condition)
        remaining = None
        if until is not None and now_ms < until:
            remaining = until - now_ms
        return {
            "condition": condition,
            "cooldown_ms": self._cooldown_for(condition),
            "cooldown_remaining_ms": remaining,
        }

    # -----------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------

    def _cooldown_for(self, condition: str) -> int:
        return int(self.cooldowns.get(condition, self.config.default_cooldown_ms))

    # -----------------------------------------------------
    # Administrative / Dynamic Updates
    # -----------------------------------------------------

    def set_cooldown(self, condition: str, cooldown_ms: int) -> None:
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must be >= 0")
        self.cooldowns[condition] = int(cooldown_ms)

    def reset_condition(self, condition: str) -> None:
        """
        Open the guard for a condition immediately.
        """
        self._blocked_until_ms.pop(condition, None)

    def clear_history(self) -> None:
        self._blocked_until_ms.clear()
        self.last_event = None

    def __repr__(self) -> str:
        return f"AlertSystem(guards={len(self._blocked_until_ms)}, sent={self._sequence_counter}, config={self.config})"


# ---------------------------------------------------------
# Convenience Factory
# ---------------------------------------------------------

def create_default_alert_system(cooldown_ms: Optional[int] = None) -> AlertSystem:
    """
    Ready-made AlertSystem for the slouching condition.
    """
    from slouchguard.config.defaults import ALERT_MESSAGES, TIMING_SETTINGS

    cooldown = TIMING_SETTINGS["alert_cooldown_ms"] if cooldown_ms is None else cooldown_ms
    return AlertSystem(
        messages=ALERT_MESSAGES,
        severities={"slouching": "warning"},
        cooldowns={"slouching": cooldown},
        config=AlertConfig(default_cooldown_ms=cooldown),
    )
