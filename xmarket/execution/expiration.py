from __future__ import annotations

import asyncio
import heapq
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from xmarket.core.clock import IClock, TimerHandle, WallClock

ExpirationCallback = Callable[[str], Any]


class ExpirationWatcher:
    """Notifies a single subscriber as tracked orders pass their expiration.

    Entries live in a binary heap keyed by ``(expiration_ms, insertion_seq)``;
    updates and removals are lazy, so stale heap rows are skipped on peek.
    Exactly one timer is outstanding while there is something to wait for.
    """

    def __init__(self, *, clock: Optional[IClock] = None, logger: Optional[logging.Logger] = None) -> None:
        self._clock = clock or WallClock()
        self._log = logger or logging.getLogger("xmarket.execution.expiration")
        self._heap: List[Tuple[int, int, str]] = []
        self._entries: Dict[str, Tuple[int, int]] = {}
        self._seq = 0
        self._timer: Optional[TimerHandle] = None
        self._armed_for: Optional[int] = None
        self._callback: Optional[ExpirationCallback] = None
        self._closed = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._entries)

    @property
    def subscribed(self) -> bool:
        return self._callback is not None and not self._closed

    @property
    def armed_for(self) -> Optional[int]:
        return self._armed_for

    def __contains__(self, order_hash: object) -> bool:
        return order_hash in self._entries

    def add_order(self, order_hash: str, expiration_ms: int) -> None:
        if self._closed:
            raise RuntimeError("expiration watcher has been unsubscribed")
        expiration_ms = int(expiration_ms)
        current = self._entries.get(order_hash)
        if current is not None and current[0] == expiration_ms:
            return
        self._seq += 1
        self._entries[order_hash] = (expiration_ms, self._seq)
        heapq.heappush(self._heap, (expiration_ms, self._seq, order_hash))
        if self.subscribed:
            self._rearm()

    def remove_order(self, order_hash: str) -> bool:
        if self._entries.pop(order_hash, None) is None:
            return False
        if self.subscribed:
            self._rearm()
        return True

    def subscribe(self, callback: ExpirationCallback) -> None:
        if self._closed:
            raise RuntimeError("expiration watcher has been unsubscribed")
        if self._callback is not None:
            raise RuntimeError("expiration watcher already has a subscriber")
        self._callback = callback
        self._rearm()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._callback = None
        self._cancel_timer()
        self._heap.clear()
        self._entries.clear()

    # ------------------------------------------------------------------
    def _peek(self) -> Optional[Tuple[int, int, str]]:
        while self._heap:
            expiration_ms, seq, order_hash = self._heap[0]
            if self._entries.get(order_hash) == (expiration_ms, seq):
                return self._heap[0]
            heapq.heappop(self._heap)
        return None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._armed_for = None

    def _rearm(self) -> None:
        head = self._peek()
        if head is None:
            self._cancel_timer()
            return
        earliest = head[0]
        if self._timer is not None and self._armed_for == earliest:
            return
        self._cancel_timer()
        delay_ms = max(0, earliest - self._clock.now_ms())
        self._timer = self._clock.call_later(delay_ms / 1000.0, self._on_timer)
        self._armed_for = earliest

    def _on_timer(self) -> None:
        self._timer = None
        self._armed_for = None
        now = self._clock.now_ms()
        while self.subscribed:
            head = self._peek()
            if head is None or head[0] > now:
                break
            heapq.heappop(self._heap)
            order_hash = head[2]
            del self._entries[order_hash]
            self._log.info("order_expired", extra={"order_hash": order_hash, "pending": len(self._entries)})
            self._emit(order_hash)
        if self.subscribed:
            self._rearm()

    def _emit(self, order_hash: str) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            result = callback(order_hash)
        except Exception:
            self._log.exception("expiration callback failed", extra={"order_hash": order_hash})
            return
        if asyncio.iscoroutine(result):
            task = asyncio.get_running_loop().create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log.error("expiration callback failed", exc_info=exc)


__all__ = ["ExpirationWatcher", "ExpirationCallback"]
