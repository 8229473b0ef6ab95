"""Shared test fixtures for host-pulse."""

from collections.abc import Iterable

import pytest

from hostpulse.config import CpuConfig
from hostpulse.counters import CounterReadError, CpuSnapshot


def make_snapshot(
    user: float = 0, system: float = 0, idle: float = 0, nice: float = 0
) -> CpuSnapshot:
    """Create a CpuSnapshot from per-category counters."""
    return CpuSnapshot.from_counters(user=user, system=system, idle=idle, nice=nice)


def snapshots_for_rates(user_rates: Iterable[float], step: float = 100.0) -> list[CpuSnapshot]:
    """Build cumulative snapshots whose consecutive deltas give the user rates.

    The first snapshot is the baseline; each following one advances the total
    by `step`, split between user and idle so that user% equals the rate.
    """
    user = idle = 0.0
    snapshots = [make_snapshot(user=user, idle=idle)]
    for rate in user_rates:
        user += step * rate / 100
        idle += step * (100 - rate) / 100
        snapshots.append(make_snapshot(user=user, idle=idle))
    return snapshots


class ScriptedCounters:
    """Counter source that replays snapshots (or raises queued errors)."""

    def __init__(self, items: Iterable[CpuSnapshot | Exception]) -> None:
        self._items = list(items)
        self.calls = 0

    def __call__(self) -> CpuSnapshot:
        self.calls += 1
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Notifier double that records calls instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.messages: list[tuple[str, str]] = []
        self.fail = fail
        self.lock_was_held: list[bool] = []
        self.lock = None

    def notify(self, hostname: str, text: str) -> bool:
        if self.lock is not None:
            self.lock_was_held.append(self.lock.locked())
        self.messages.append((hostname, text))
        if self.fail:
            raise RuntimeError("webhook exploded")
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def cpu_config() -> CpuConfig:
    """Five-sample window, no cooldown, 80% threshold."""
    return CpuConfig(threshold=80.0, sample_rate=1.0, reporting_interval=5.0, cooldown=0.0)


@pytest.fixture
def read_error() -> CounterReadError:
    return CounterReadError("cpu_times unavailable: boom")
