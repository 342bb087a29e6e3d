"""Counter and distribution primitives kept in process memory."""
from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Dict, Iterable, Iterator, Mapping, Tuple

LabelValues = Tuple[str, ...]


class Metric:
    """Shared label handling for concrete metric types."""

    kind = "untyped"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._lock = Lock()

    def _label_key(self, labels: Mapping[str, str] | None) -> LabelValues:
        labels = labels or {}
        unexpected = set(labels) - set(self.label_names)
        if unexpected:
            raise ValueError(f"Metric '{self.name}' got unknown labels {sorted(unexpected)}")
        missing = [label for label in self.label_names if label not in labels]
        if missing:
            raise ValueError(f"Metric '{self.name}' is missing labels {missing}")
        return tuple(str(labels[label]) for label in self.label_names)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        raise NotImplementedError


class CounterMetric(Metric):
    """Monotonic counter."""

    kind = "counter"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: Dict[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += amount

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self._label_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: {"value": value} for key, value in self._values.items()}


@dataclass
class _Summary:
    count: int = 0
    total: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value


class DistributionMetric(Metric):
    """Count and sum of observed values, exported as a summary."""

    kind = "summary"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: Dict[LabelValues, _Summary] = defaultdict(_Summary)

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._values[key].observe(value)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {
                key: {"count": float(summary.count), "sum": summary.total}
                for key, summary in self._values.items()
            }


@contextmanager
def track_duration(metric: DistributionMetric, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
    """Observe the wall-clock seconds spent inside the block."""

    start = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - start, labels=labels)
