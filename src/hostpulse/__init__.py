"""Host metrics sampler with smoothed gauges and debounced alerts."""

__version__ = "0.1.0"
