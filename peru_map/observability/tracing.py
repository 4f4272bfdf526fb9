"""Tracing helpers for geocoder lookups and map navigation."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def _logger() -> structlog.stdlib.BoundLogger:
    return structlog.get_logger("peru_map.trace")


def set_context(*, generation: int, query: str) -> None:
    bind_contextvars(generation=generation, query=query)


def clear_context() -> None:
    clear_contextvars()


@contextlib.contextmanager
def span(*, name: str, url: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().debug("trace_span", span=name, url=url, elapsed_ms=elapsed_ms)


def log_lookup_result(*, query: str, status: int, items: int, elapsed_ms: int) -> None:
    _logger().info(
        "geocoder_lookup_result",
        query=query,
        status=status,
        items=items,
        elapsed_ms=elapsed_ms,
    )


def log_lookup_failure(*, query: str, status: Optional[int], reason: str) -> None:
    _logger().warning("geocoder_lookup_failed", query=query, status=status, reason=reason)


def log_navigation(*, kind: str, zoom: float, duration_ms: int) -> None:
    _logger().info("navigation_issued", kind=kind, zoom=zoom, duration_ms=duration_ms)
