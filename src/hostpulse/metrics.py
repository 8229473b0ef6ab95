"""Gauges and the batch they are reported in."""

import threading
import time


class Batch:
    """One reporting round of gauge values, in insertion order."""

    def __init__(self, timestamp: float | None = None) -> None:
        self.timestamp = timestamp if timestamp is not None else time.time()
        self._values: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __getitem__(self, name: str) -> float:
        return self._values[name]

    def add(self, name: str, value: float) -> None:
        """Record a value; a later add for the same name wins."""
        self._values[name] = value

    def as_dict(self) -> dict[str, float]:
        """Return a copy of the recorded values."""
        return dict(self._values)


class Gauge:
    """Latest-value metric."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def update(self, value: float) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = value

    def fill(self, batch: Batch) -> None:
        """Copy the current value into a batch."""
        batch.add(self.name, self.value)
