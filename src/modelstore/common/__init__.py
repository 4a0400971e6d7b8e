from __future__ import annotations

from .cache import CacheEntry, KeyedCache
from .clock import (
    FrameClock,
    LoopScheduler,
    ManualClock,
    ManualScheduler,
    ResolutionClock,
    Scheduler,
)
from .ids import new_id, stringify_id

__all__ = [
    "CacheEntry",
    "FrameClock",
    "KeyedCache",
    "LoopScheduler",
    "ManualClock",
    "ManualScheduler",
    "ResolutionClock",
    "Scheduler",
    "new_id",
    "stringify_id",
]
