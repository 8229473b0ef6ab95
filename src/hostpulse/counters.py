"""Cumulative CPU counters and the rates derived from them."""

from dataclasses import dataclass
from enum import IntEnum

import psutil


class CpuCategory(IntEnum):
    """Index of each category within a CpuSnapshot."""

    USER = 0
    SYSTEM = 1
    IDLE = 2
    NICE = 3


class CounterReadError(Exception):
    """Raised when the counter source cannot produce a snapshot."""


@dataclass(frozen=True)
class CpuSnapshot:
    """Cumulative CPU time per category at one instant.

    Counters are monotonically non-decreasing while the machine is up.
    """

    counters: tuple[float, ...]  # ordered as CpuCategory
    total: float

    @classmethod
    def from_counters(
        cls, user: float, system: float, idle: float, nice: float
    ) -> "CpuSnapshot":
        """Build a snapshot, computing the total across all categories."""
        counters = (user, system, idle, nice)
        return cls(counters=counters, total=sum(counters))


def read_cpu_snapshot() -> CpuSnapshot:
    """Read system-wide CPU times from the kernel.

    Raises:
        CounterReadError: If the counters could not be read.
    """
    try:
        times = psutil.cpu_times()
    except (OSError, psutil.Error) as e:
        raise CounterReadError(f"cpu_times unavailable: {e}") from e

    return CpuSnapshot.from_counters(
        user=times.user,
        system=times.system,
        idle=times.idle,
        nice=getattr(times, "nice", 0.0),
    )


class CounterRateCalculator:
    """Turns two consecutive snapshots into per-category percentages."""

    def rate(
        self,
        category: int,
        previous: CpuSnapshot | None,
        current: CpuSnapshot | None,
    ) -> float:
        """Percentage of the elapsed CPU budget spent in `category`.

        Returns 0.0 until two snapshots exist, for unknown categories, and
        when no CPU time elapsed between the snapshots.
        """
        if previous is None or current is None:
            return 0.0
        if category >= len(current.counters) or category >= len(previous.counters):
            return 0.0

        delta = current.counters[category] - previous.counters[category]
        total_delta = current.total - previous.total
        if total_delta == 0:
            return 0.0
        return delta / total_delta * 100
