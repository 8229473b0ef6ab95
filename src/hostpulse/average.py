# src/hostpulse/average.py
"""Ring buffer with an attached exponential moving average.

One RingAverage holds `capacity` raw samples (reporting_interval / sample_rate)
plus a running EMA over every sample ever added. The EMA feeds the metrics
gauges; the windowed average over the ring feeds the alert decision.

Not thread-safe on its own. CpuSampler guards all of its averages with a
single lock.
"""

import math


class RingAverage:
    """Fixed-capacity ring of samples with a running EMA."""

    def __init__(self, alpha: float, capacity: int) -> None:
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha!r}")
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity!r}")
        self._alpha = alpha
        self._values: list[float] = [0.0] * capacity
        self._write_pos = 0
        self._filled = False
        self._ema = 0.0

    @property
    def alpha(self) -> float:
        """Smoothing factor applied to each new sample."""
        return self._alpha

    @property
    def capacity(self) -> int:
        """Number of raw samples retained."""
        return len(self._values)

    @property
    def write_pos(self) -> int:
        """Index of the next slot to overwrite."""
        return self._write_pos

    @property
    def filled(self) -> bool:
        """True once the ring has wrapped at least once."""
        return self._filled

    def values(self) -> list[float]:
        """Return a copy of the ring slots in physical order."""
        return list(self._values)

    def add(self, value: float) -> None:
        """Add a sample to the ring and fold it into the EMA."""
        if self._write_pos == 0 and not self._filled:
            self._ema = value
        else:
            self._ema = value * self._alpha + self._ema * (1 - self._alpha)

        self._values[self._write_pos] = value
        self._write_pos = (self._write_pos + 1) % len(self._values)
        if self._write_pos == 0:
            self._filled = True

    def peek_ema(self) -> float:
        """Return the current EMA without modifying state."""
        return self._ema

    def windowed_average(self) -> float:
        """Average of overlapping half-width window averages over the ring.

        With n real samples, each window spans ceil(n/2) consecutive slots,
        starting at offsets 0..floor(n/2). The result is the mean of the
        window means, which damps single-sample spikes harder than the EMA.

        Before the first wrap only the first write_pos slots hold real data;
        the zero tail is ignored. Slots are read in physical order.
        """
        if not self._values:
            return 0.0

        effective_len = len(self._values) if self._filled else self._write_pos
        if effective_len == 0:
            return 0.0

        half_count = math.ceil(effective_len / 2)
        half_range = effective_len // 2

        bucket_avgs = []
        for i in range(half_range + 1):
            window = self._values[i : i + half_count]
            bucket_avgs.append(sum(window) / len(window))

        return sum(bucket_avgs) / len(bucket_avgs)
