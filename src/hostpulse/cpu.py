"""CPU sampler: counters -> rates -> smoothed averages -> debounced alerts.

One CpuSampler instance owns the snapshot pair and the alert state. Its
averages are shared with the metrics reporter, so every read or write of them
happens under a single lock. The lock is never held across an await or while
a notification is being delivered.
"""

import asyncio
import threading
import time
from collections.abc import Callable

import structlog

from hostpulse import logging as console
from hostpulse.alerts import AlertDebouncer, AlertEvent
from hostpulse.average import RingAverage
from hostpulse.config import CpuConfig
from hostpulse.counters import (
    CounterRateCalculator,
    CounterReadError,
    CpuCategory,
    CpuSnapshot,
    read_cpu_snapshot,
)
from hostpulse.metrics import Batch, Gauge
from hostpulse.notifications import Notifier

log = structlog.get_logger()

GAUGE_NAMES = {
    CpuCategory.USER: "cpu.user",
    CpuCategory.SYSTEM: "cpu.system",
    CpuCategory.IDLE: "cpu.idle",
}
ALERT_METRIC = GAUGE_NAMES[CpuCategory.USER]


def format_alert(event: AlertEvent, value: float, threshold: float) -> str:
    """Render the notification text for an alert event."""
    if event is AlertEvent.ALERT:
        return (
            f"[ALERT]: {ALERT_METRIC} average utilization {value:f} "
            f"is higher than {threshold:f}"
        )
    return f"[RESOLVED]: {ALERT_METRIC} average utilization is within threshold"


class CpuSampler:
    """Periodic CPU sampler with smoothed gauges and a threshold alert."""

    def __init__(
        self,
        config: CpuConfig,
        hostname: str,
        notifier: Notifier,
        read_counters: Callable[[], CpuSnapshot] = read_cpu_snapshot,
        clock: Callable[[], float] = time.monotonic,
        heartbeat_ticks: int = 0,
    ):
        self.config = config
        self.hostname = hostname
        self.notifier = notifier
        self._read_counters = read_counters
        self._clock = clock
        self._heartbeat_ticks = heartbeat_ticks

        self._lock = threading.Lock()
        self.previous: CpuSnapshot | None = None
        self.current: CpuSnapshot | None = None
        self._rates = CounterRateCalculator()

        # Only cpu.user drives alerts, so only it needs a full window
        self.averages: dict[CpuCategory, RingAverage] = {
            CpuCategory.USER: RingAverage(config.alpha, config.ring_capacity),
            CpuCategory.SYSTEM: RingAverage(config.alpha, 1),
            CpuCategory.IDLE: RingAverage(config.alpha, 1),
        }
        self.gauges: dict[CpuCategory, Gauge] = {
            category: Gauge(name) for category, name in GAUGE_NAMES.items()
        }
        self.debouncer = AlertDebouncer(config.cooldown)
        self.tick_count = 0

    def clear(self) -> None:
        """Forget both snapshots. Average history is kept."""
        with self._lock:
            self.previous = None
            self.current = None

    def collect_counters(self) -> CounterReadError | None:
        """Rotate snapshots and read a fresh one.

        Returns:
            The read error if the counters were unavailable (snapshots are
            cleared in that case), otherwise None.
        """
        try:
            snapshot = self._read_counters()
        except CounterReadError as e:
            log.warning("counter_read_failed", error=str(e))
            self.clear()
            return e

        with self._lock:
            self.previous = self.current
            self.current = snapshot
        return None

    async def tick(self) -> AlertEvent | None:
        """Run one sampling round and dispatch any resulting notification."""
        if self.collect_counters() is not None:
            return None

        with self._lock:
            for category, average in self.averages.items():
                average.add(self._rates.rate(category, self.previous, self.current))
            value = self.averages[CpuCategory.USER].windowed_average()

        threshold = self.config.threshold
        event = self.debouncer.update(value >= threshold, self._clock())
        self.tick_count += 1

        if self._heartbeat_ticks > 0 and self.tick_count % self._heartbeat_ticks == 0:
            self._log_heartbeat()

        if event is not None:
            await self._dispatch(event, value)
        return event

    async def _dispatch(self, event: AlertEvent, value: float) -> None:
        """Deliver an alert event. Never called with the lock held."""
        threshold = self.config.threshold
        if event is AlertEvent.ALERT:
            log.warning("alert_triggered", metric=ALERT_METRIC, value=value, threshold=threshold)
            console.alert_triggered(value, threshold)
        else:
            log.info("alert_resolved", metric=ALERT_METRIC, value=value, threshold=threshold)
            console.alert_resolved(value, threshold)

        text = format_alert(event, value, threshold)
        try:
            await asyncio.to_thread(self.notifier.notify, self.hostname, text)
        except Exception as e:
            log.exception("notification_failed", error=str(e), alert=event.value)

    def _log_heartbeat(self) -> None:
        emas = self.averages_snapshot()
        log.info("sampler_heartbeat", ticks=self.tick_count, **emas)
        console.heartbeat(
            emas["cpu.user"], emas["cpu.system"], emas["cpu.idle"], self.config.threshold
        )

    async def run(self, shutdown: asyncio.Event) -> None:
        """Tick every sample_rate seconds until shutdown is set.

        A failing tick is logged and the snapshots are cleared; the loop
        carries on with the next tick.
        """
        period = self.config.sample_rate
        loop = asyncio.get_running_loop()

        # Prime the snapshot pair so the first tick has a delta to work with
        self.collect_counters()
        next_tick = loop.time() + period

        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=max(0.0, next_tick - loop.time()))
                break
            except asyncio.TimeoutError:
                pass

            # Missed ticks are dropped rather than replayed
            next_tick += period
            if next_tick <= loop.time():
                next_tick = loop.time() + period

            try:
                await self.tick()
            except asyncio.CancelledError:
                log.info("sampler_cancelled")
                raise
            except Exception as e:
                log.exception("tick_failed", error=str(e))
                console.tick_failed(str(e))
                self.clear()

    def collect(self, batch: Batch) -> None:
        """Push the current EMAs to the gauges and fill a metrics batch."""
        with self._lock:
            for category, average in self.averages.items():
                self.gauges[category].update(average.peek_ema())
        for gauge in self.gauges.values():
            gauge.fill(batch)

    def averages_snapshot(self) -> dict[str, float]:
        """Return the EMA of each tracked category, keyed by gauge name."""
        with self._lock:
            return {
                GAUGE_NAMES[category]: average.peek_ema()
                for category, average in self.averages.items()
            }
