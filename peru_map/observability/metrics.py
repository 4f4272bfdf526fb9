"""Per-run counters and timings for the search pipeline and the marker layer."""
from __future__ import annotations

import contextlib
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

import orjson
import structlog

LOGGER = structlog.get_logger(__name__)

COUNTERS = (
    "searches_scheduled",
    "searches_dispatched",
    "searches_skipped",
    "lookup_failures",
    "malformed_items",
    "results_presented",
    "empty_results",
    "navigations",
    "markers_loaded",
    "markers_rejected",
)


@dataclass(slots=True)
class Timer:
    """Elapsed time of a measured block, filled in when the block exits."""

    name: str
    elapsed_ms: int = 0


class MetricsRegistry:
    """Counters plus millisecond timings recorded during one CLI run."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, List[int]] = defaultdict(list)
        for key in COUNTERS:
            self._counters[key] = 0

    def incr(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def observe(self, name: str, elapsed_ms: int) -> None:
        """Record one duration sample under ``name``."""
        self._timings[name].append(elapsed_ms)

    def timings(self, name: str) -> List[int]:
        return list(self._timings.get(name, []))

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counters)

    def timing_summary(self) -> Dict[str, Dict[str, int]]:
        """Count, total and slowest sample for every timing."""
        return {
            name: {"count": len(samples), "total_ms": sum(samples), "max_ms": max(samples)}
            for name, samples in self._timings.items()
            if samples
        }

    def export(self, *, path: Path, run_id: str, labels: Optional[Mapping[str, object]] = None) -> Path:
        """Write the run's counters and timings as JSON to ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "run_id": run_id,
            "labels": dict(labels or {}),
            "counters": self.snapshot(),
            "timings": self.timing_summary(),
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        LOGGER.debug("metrics_exported", path=str(path), run_id=run_id)
        return path


@contextlib.contextmanager
def record_duration(registry: MetricsRegistry, metric_name: str) -> Iterator[Timer]:
    """Time the block and store the sample; the yielded timer exposes it afterwards."""
    timer = Timer(name=metric_name)
    start = time.perf_counter()
    try:
        yield timer
    finally:
        timer.elapsed_ms = int((time.perf_counter() - start) * 1000)
        registry.observe(metric_name, timer.elapsed_ms)
