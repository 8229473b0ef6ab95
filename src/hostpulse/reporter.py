"""Periodic metrics reporting, independent of the sampling tick."""

import asyncio
from collections.abc import Callable, Sequence
from typing import Protocol

import structlog

from hostpulse.metrics import Batch

log = structlog.get_logger()


class Collector(Protocol):
    def collect(self, batch: Batch) -> None: ...


def log_sink(batch: Batch) -> None:
    """Default sink: one structured log line per batch."""
    log.info("metrics_batch", batch_ts=batch.timestamp, **batch.as_dict())


class Reporter:
    """Drains collectors into a Batch and hands it to a sink."""

    def __init__(
        self,
        collectors: Sequence[Collector],
        interval: float,
        sink: Callable[[Batch], None] = log_sink,
    ):
        self.collectors = list(collectors)
        self.interval = interval
        self.sink = sink

    def report_once(self) -> Batch:
        """Build one batch from every collector and deliver it."""
        batch = Batch()
        for collector in self.collectors:
            try:
                collector.collect(batch)
            except Exception as e:
                log.exception(
                    "collector_failed", collector=type(collector).__name__, error=str(e)
                )
        self.sink(batch)
        return batch

    async def run(self, shutdown: asyncio.Event) -> None:
        """Report every interval seconds until shutdown is set."""
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.report_once()
            except Exception as e:
                log.exception("report_failed", error=str(e))
