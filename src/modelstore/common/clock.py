"""Resolution tick clocks and deferred-work schedulers.

A resolution tick is the window in which repeated reads of a ``cache=False``
config share one transient value. The clock hands out one timestamp per tick;
the scheduler runs debounced work right after the current synchronous batch.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class ResolutionClock(Protocol):
    """Returns the timestamp (in seconds) of the current resolution tick."""

    def now(self) -> float: ...


@runtime_checkable
class Scheduler(Protocol):
    """Defers a callback until the current synchronous batch completes."""

    def call_soon(self, callback: Callable[[], None]) -> None: ...


@dataclass(slots=True)
class FrameClock:
    """Tick that lasts ``frame_seconds`` of monotonic time from its first read."""

    frame_seconds: float = 1 / 60
    time_source: Callable[[], float] = time.monotonic
    _current: float | None = field(default=None, init=False)

    def now(self) -> float:
        current_time = self.time_source()
        if self._current is None or current_time - self._current >= self.frame_seconds:
            self._current = current_time
        return self._current


@dataclass(slots=True)
class ManualClock:
    """Clock stepped explicitly by tests."""

    current: float = 1.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float = 1.0) -> float:
        self.current += seconds
        return self.current


class LoopScheduler:
    """Schedules on the running event loop, or runs inline when no loop is running."""

    def call_soon(self, callback: Callable[[], None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback()
            return
        loop.call_soon(callback)


@dataclass(slots=True)
class ManualScheduler:
    """Queues callbacks until ``run_pending`` is called."""

    queue: list[Callable[[], None]] = field(default_factory=list["Callable[[], None]"])

    def call_soon(self, callback: Callable[[], None]) -> None:
        self.queue.append(callback)

    def run_pending(self) -> int:
        callbacks, self.queue = self.queue, []
        for callback in callbacks:
            callback()
        return len(callbacks)
