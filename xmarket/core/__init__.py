# Core package exports

from .clock import IClock, TimerHandle, WallClock

__all__ = [
    "IClock",
    "TimerHandle",
    "WallClock",
]
