"""Millisecond clocks used to timestamp history entries and session starts."""

import logging
import math
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from inputwritr.models import INPUTWRITR_LOG_LEVEL

logger = logging.getLogger('inputwritr')
logger.setLevel(INPUTWRITR_LOG_LEVEL)

# Candidate time sources, in order of preference when resolutions tie
_TIME_SOURCES: dict[str, Callable[[], float]] = {
    'perf_counter': time.perf_counter,
    'monotonic': time.monotonic,
    'time': time.time,
}


def round_ms(ms: float) -> int:
    """Round a millisecond reading half-up, so 1000.5 becomes 1001 rather than the even 1000."""
    return math.floor(ms + 0.5)


@runtime_checkable
class Clock(Protocol):
    """Anything with a now() returning non-decreasing elapsed milliseconds."""

    def now(self) -> float: ...


def _pick_time_source() -> str:
    best_name = 'time'
    best_key: tuple[bool, float] | None = None
    for name in _TIME_SOURCES:
        try:
            info = time.get_clock_info(name)
        except ValueError:
            continue
        # monotonic sources always win over adjustable ones, then finest resolution
        key = (not info.monotonic, info.resolution)
        if best_key is None or key < best_key:
            best_name, best_key = name, key
    return best_name


class MonotonicClock:
    """Production clock: the finest monotonic time source this platform offers, in ms."""

    def __init__(self, source: str | None = None):
        if source is not None and source not in _TIME_SOURCES:
            raise ValueError(f'Unknown time source {source!r}, expected one of {list(_TIME_SOURCES)}')
        self.source = source or _pick_time_source()
        self._read = _TIME_SOURCES[self.source]
        logger.debug(f'⏱️ MonotonicClock using time.{self.source}()')

    def now(self) -> float:
        return self._read() * 1000.0

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(source={self.source!r})'


class ManualClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ValueError(f'Cannot move a clock backwards (advance by {ms}ms)')
        self._now += ms
        return self._now

    def set(self, ms: float) -> float:
        if ms < self._now:
            raise ValueError(f'Cannot move a clock backwards (from {self._now}ms to {ms}ms)')
        self._now = float(ms)
        return self._now

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(now={self._now})'
