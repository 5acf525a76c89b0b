"""Process-local counters and latency histograms.

Nothing here survives a restart. ``GET /metrics`` serves the flattened view
from :func:`get_counters` when the endpoint is enabled.
"""

from __future__ import annotations

from bisect import bisect_left
from collections import Counter
from dataclasses import dataclass, field

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000)

_counters: Counter[str] = Counter()


@dataclass
class _Histogram:
    bounds: tuple[int, ...]
    hits: list[int] = field(default_factory=list)
    total: int = 0
    count: int = 0

    def __post_init__(self) -> None:
        # One slot per bound plus the overflow slot
        self.hits = [0] * (len(self.bounds) + 1)

    def observe(self, value: int) -> None:
        self.hits[bisect_left(self.bounds, value)] += 1
        self.total += value
        self.count += 1

    def flatten(self, name: str) -> dict[str, int]:
        labels = [f"le_{b}" for b in self.bounds] + [f"gt_{self.bounds[-1]}"]
        out = {f"histo.{name}.{lbl}": n for lbl, n in zip(labels, self.hits) if n}
        out[f"histo.{name}.sum"] = self.total
        out[f"histo.{name}.count"] = self.count
        return out


_histograms: dict[str, _Histogram] = {}


def inc_counter(name: str, value: int = 1) -> None:
    _counters[name] += value


def get_counter(name: str) -> int:
    return _counters[name]


def observe_histogram(
    name: str, value: int, *, buckets: tuple[int, ...] = LATENCY_BUCKETS_MS
) -> None:
    hist = _histograms.get(name)
    if hist is None:
        hist = _histograms[name] = _Histogram(tuple(buckets))
    hist.observe(int(value))


def get_counters() -> dict[str, int]:
    out = dict(_counters)
    for name, hist in _histograms.items():
        out.update(hist.flatten(name))
    return out


def reset_counters() -> None:
    _counters.clear()
    _histograms.clear()
