from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol
        ...


class IClock(Protocol):
    def now_ms(self) -> int:  # pragma: no cover - protocol
        ...

    def now(self) -> float:  # pragma: no cover - protocol
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:  # pragma: no cover - protocol
        ...


class WallClock:
    """Wall clock bound lazily to the running event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.time()

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self._get_loop().call_later(delay, callback, *args)


__all__ = ["IClock", "TimerHandle", "WallClock"]
