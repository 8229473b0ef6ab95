"""Debounced threshold alerting.

A breach (or recovery) must be seen on CONFIRM_TICKS consecutive ticks before
it is reported, and two notifications are never closer than the cooldown.
"""

from dataclasses import dataclass
from enum import Enum

CONFIRM_TICKS = 3


class AlertEvent(Enum):
    """Notifications emitted by the debouncer."""

    ALERT = "alert"
    RESOLVED = "resolved"


class AlertPhase(Enum):
    """Observable state of the debouncer."""

    IDLE = "idle"
    ALERT_RISING = "alert_rising"
    TRIGGERED = "triggered"
    RESOLVE_RISING = "resolve_rising"


@dataclass
class AlertState:
    """Counters behind the debouncer.

    alert_count and resolve_count saturate at CONFIRM_TICKS and are never
    both non-zero.
    """

    alert_count: int = 0
    resolve_count: int = 0
    triggered: bool = False
    last_notified_at: float | None = None


class AlertDebouncer:
    """Hysteresis state machine over a stream of breach booleans."""

    def __init__(self, cooldown: float) -> None:
        self.cooldown = cooldown
        self.state = AlertState()

    @property
    def triggered(self) -> bool:
        return self.state.triggered

    @property
    def phase(self) -> AlertPhase:
        """Current phase derived from the counters."""
        s = self.state
        if s.triggered:
            if 0 < s.resolve_count < CONFIRM_TICKS:
                return AlertPhase.RESOLVE_RISING
            return AlertPhase.TRIGGERED
        if 0 < s.alert_count < CONFIRM_TICKS:
            return AlertPhase.ALERT_RISING
        return AlertPhase.IDLE

    def _cooldown_elapsed(self, now: float) -> bool:
        last = self.state.last_notified_at
        return last is None or now - last > self.cooldown

    def update(self, breach: bool, now: float) -> AlertEvent | None:
        """Feed one tick and return the event to dispatch, if any."""
        s = self.state
        if breach:
            s.alert_count = min(s.alert_count + 1, CONFIRM_TICKS)
            s.resolve_count = 0
        else:
            s.resolve_count = min(s.resolve_count + 1, CONFIRM_TICKS)
            s.alert_count = 0

        if s.alert_count == CONFIRM_TICKS and self._cooldown_elapsed(now):
            s.triggered = True
            s.last_notified_at = now
            return AlertEvent.ALERT
        if s.triggered and s.resolve_count == CONFIRM_TICKS and self._cooldown_elapsed(now):
            s.triggered = False
            s.last_notified_at = now
            return AlertEvent.RESOLVED
        return None
