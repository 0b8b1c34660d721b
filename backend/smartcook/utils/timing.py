"""Timing spans for the mix pipeline stages and collaborator calls."""

import time
from contextlib import contextmanager
from typing import Optional

from smartcook.logging import get_logger

logger = get_logger(__name__)

# Prefix for all timing logs so they are easy to grep
_TIMING_PREFIX = "[TIMING]"


def _format_duration(ms: int) -> str:
    """Return human-readable duration: e.g. 12500 -> '12.5s', 750 -> '750ms'."""
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{ms}ms"


class TimingTracker:
    """Elapsed time for one named span. Stopping twice keeps the first reading."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._start: Optional[float] = None
        self._elapsed_ms: Optional[int] = None

    def start(self) -> "TimingTracker":
        self._start = time.perf_counter()
        self._elapsed_ms = None
        return self

    def stop(self) -> int:
        if self._start is None:
            return 0
        if self._elapsed_ms is None:
            self._elapsed_ms = int((time.perf_counter() - self._start) * 1000)
        return self._elapsed_ms

    @property
    def elapsed_ms(self) -> Optional[int]:
        if self._elapsed_ms is not None:
            return self._elapsed_ms
        if self._start is None:
            return None
        return int((time.perf_counter() - self._start) * 1000)

    @property
    def elapsed_s(self) -> float:
        return (self.elapsed_ms or 0) / 1000.0


@contextmanager
def time_span(name: str, **extra: object):
    """Time a block and log it with optional key=value fields."""
    t = TimingTracker(name).start()
    try:
        yield t
    finally:
        elapsed = t.stop()
        parts = [f"elapsed_ms={elapsed}", f"({_format_duration(elapsed)})"] + [
            f"{k}={v}" for k, v in extra.items()
        ]
        logger.info("%s %s %s", _TIMING_PREFIX, name, " ".join(parts))
