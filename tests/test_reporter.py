"""Tests for gauges, batches and the metrics reporter."""

import asyncio

import pytest

from hostpulse.metrics import Batch, Gauge
from hostpulse.reporter import Reporter


class StaticCollector:
    def __init__(self, **values: float) -> None:
        self.values = values
        self.calls = 0

    def collect(self, batch: Batch) -> None:
        self.calls += 1
        for name, value in self.values.items():
            batch.add(name, value)


class BrokenCollector:
    def collect(self, batch: Batch) -> None:
        raise RuntimeError("collector down")


def test_gauge_update_and_fill():
    gauge = Gauge("cpu.user")
    assert gauge.value == 0.0
    gauge.update(12.5)

    batch = Batch()
    gauge.fill(batch)

    assert batch.as_dict() == {"cpu.user": 12.5}
    assert "cpu.user" in batch
    assert len(batch) == 1


def test_batch_later_add_wins():
    batch = Batch(timestamp=123.0)
    batch.add("a", 1.0)
    batch.add("a", 2.0)
    assert batch["a"] == 2.0
    assert batch.timestamp == 123.0


def test_batch_as_dict_is_copy():
    batch = Batch()
    batch.add("a", 1.0)
    d = batch.as_dict()
    d["a"] = 99.0
    assert batch["a"] == 1.0


def test_report_once_merges_collectors():
    received = []
    reporter = Reporter(
        [StaticCollector(a=1.0), StaticCollector(b=2.0)], interval=10.0, sink=received.append
    )

    batch = reporter.report_once()

    assert received == [batch]
    assert batch.as_dict() == {"a": 1.0, "b": 2.0}


def test_report_once_skips_failing_collector():
    received = []
    good = StaticCollector(a=1.0)
    reporter = Reporter([BrokenCollector(), good], interval=10.0, sink=received.append)

    batch = reporter.report_once()

    assert good.calls == 1
    assert batch.as_dict() == {"a": 1.0}
    assert len(received) == 1


def test_default_sink_logs_batch():
    reporter = Reporter([StaticCollector(a=1.0)], interval=10.0)
    batch = reporter.report_once()
    assert batch["a"] == 1.0


@pytest.mark.asyncio
async def test_run_reports_until_shutdown():
    shutdown = asyncio.Event()
    received = []

    def sink(batch: Batch) -> None:
        received.append(batch)
        if len(received) == 3:
            shutdown.set()

    reporter = Reporter([StaticCollector(a=1.0)], interval=0.01, sink=sink)
    await asyncio.wait_for(reporter.run(shutdown), timeout=5.0)

    assert len(received) == 3


@pytest.mark.asyncio
async def test_run_stops_without_reporting_when_shut_down():
    shutdown = asyncio.Event()
    shutdown.set()
    received = []
    reporter = Reporter([StaticCollector(a=1.0)], interval=10.0, sink=received.append)

    await asyncio.wait_for(reporter.run(shutdown), timeout=1.0)

    assert received == []
