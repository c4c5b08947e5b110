"""Deferred-call schedulers used by InputWritr.play_history()."""

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from inputwritr.clock import ManualClock
from inputwritr.models import INPUTWRITR_LOG_LEVEL

logger = logging.getLogger('inputwritr')
logger.setLevel(INPUTWRITR_LOG_LEVEL)


@runtime_checkable
class ScheduledCall(Protocol):
    """Handle to a deferred call, asyncio.TimerHandle-compatible."""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    def schedule_after(self, delay_ms: float, callback: Callable[[], Any]) -> ScheduledCall: ...


class AsyncioScheduler:
    """Schedules replays on an asyncio event loop via loop.call_later()."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(f'{self}.schedule_after() called but no event loop is running and none was given!')

    def schedule_after(self, delay_ms: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0) / 1000.0, callback)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'


class ManualCall:
    """A call queued on a ManualScheduler."""

    __slots__ = ('due', 'callback', '_cancelled')

    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        state = 'cancelled' if self._cancelled else 'pending'
        return f'<ManualCall due={self.due}ms {state}>'


class ManualScheduler:
    """
    Deterministic scheduler driven by a ManualClock.

    Nothing fires until advance() or run_pending() is called. Calls fire in due-time
    order, and calls due at the same time fire in the order they were scheduled.
    """

    def __init__(self, clock: ManualClock | None = None):
        self.clock = clock or ManualClock()
        self._queue: list[tuple[float, int, ManualCall]] = []
        self._sequence = itertools.count()

    def schedule_after(self, delay_ms: float, callback: Callable[[], Any]) -> ManualCall:
        call = ManualCall(self.clock.now() + max(delay_ms, 0), callback)
        heapq.heappush(self._queue, (call.due, next(self._sequence), call))
        return call

    @property
    def pending(self) -> list[ManualCall]:
        return [call for _, _, call in sorted(self._queue) if not call.cancelled()]

    def run_pending(self) -> int:
        """Fire every call that is due at the clock's current time, return how many ran."""
        fired = 0
        while self._queue and self._queue[0][0] <= self.clock.now():
            _, _, call = heapq.heappop(self._queue)
            if call.cancelled():
                continue
            call.callback()
            fired += 1
        return fired

    def advance(self, ms: float) -> int:
        """Move the clock forward by `ms`, firing due calls at their own due times along the way."""
        target = self.clock.now() + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            self.clock.set(max(self._queue[0][0], self.clock.now()))
            fired += self.run_pending()
        self.clock.set(target)
        return fired

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({len(self.pending)} pending, clock={self.clock!r})'
