"""Memory, swap and load-average gauges."""

import os

import psutil
import structlog

from hostpulse.metrics import Batch, Gauge

log = structlog.get_logger()

LOAD_AVG = "system.load_avg"
MEM_USAGE = "mem.usage"
SWAP_USAGE = "swap.usage"


def memory_usage_pct(vm) -> float:
    """Percent of RAM not free, in buffers, or in page cache."""
    if not vm.total:
        return 0.0
    available = vm.free + getattr(vm, "buffers", 0) + getattr(vm, "cached", 0)
    return (vm.total - available) / vm.total * 100


def swap_usage_pct(swap) -> float:
    """Percent of swap in use."""
    if not swap.total:
        return 0.0
    return (swap.total - swap.free) / swap.total * 100


class SystemSampler:
    """Reads memory and load on demand, once per reporting batch."""

    def __init__(self) -> None:
        self.gauges = {name: Gauge(name) for name in (LOAD_AVG, MEM_USAGE, SWAP_USAGE)}

    def sample(self) -> None:
        """Refresh the gauges. A failed read leaves previous values in place."""
        try:
            load = os.getloadavg()[0]
            vm = psutil.virtual_memory()
            swap = psutil.swap_memory()
        except (OSError, psutil.Error) as e:
            log.warning("system_read_failed", error=str(e))
            return

        self.gauges[LOAD_AVG].update(load)
        self.gauges[MEM_USAGE].update(memory_usage_pct(vm))
        self.gauges[SWAP_USAGE].update(swap_usage_pct(swap))

    def collect(self, batch: Batch) -> None:
        """Sample and fill a metrics batch."""
        self.sample()
        for gauge in self.gauges.values():
            gauge.fill(batch)
