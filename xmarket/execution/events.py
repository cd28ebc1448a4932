from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Set, TypeVar

from xmarket.ledger.interface import ErrorHandler, EventLog, IEventStream, IEventSubscription, LogHandler

T = TypeVar("T")
LogMatcher = Callable[[EventLog], bool]

_log = logging.getLogger("xmarket.execution.events")


async def release(subscription: IEventSubscription, *, logger: Optional[logging.Logger] = None) -> None:
    """Unsubscribe, logging instead of raising when the transport fails."""
    log = logger or _log
    try:
        await subscription.unsubscribe()
    except Exception:
        log.warning("unsubscribe_failed", exc_info=True)


_late_releases: Set["asyncio.Task[None]"] = set()


def _release_when_opened(opening: "asyncio.Future[IEventSubscription]", log: logging.Logger) -> None:
    if opening.cancelled() or opening.exception() is not None:
        return
    task = asyncio.ensure_future(release(opening.result(), logger=log))
    _late_releases.add(task)
    task.add_done_callback(_late_releases.discard)


async def _open(
    stream: IEventStream,
    handler: LogHandler,
    *,
    filters: Optional[Mapping[str, Any]],
    from_block: int,
    on_error: ErrorHandler,
    log: logging.Logger,
) -> Optional[IEventSubscription]:
    """Open a subscription, or return None after logging a transport failure.

    A caller cancelled mid-open does not leak the listener: the pending open
    keeps running and its subscription is released once it arrives.
    """
    opening = asyncio.ensure_future(
        stream.subscribe(handler, filters=filters, from_block=from_block, on_error=on_error)
    )
    try:
        return await asyncio.shield(opening)
    except asyncio.CancelledError:
        if opening.done():
            _release_when_opened(opening, log)
        else:
            opening.add_done_callback(lambda fut: _release_when_opened(fut, log))
        raise
    except Exception:
        log.warning("event_stream_error", extra={"phase": "subscribe"}, exc_info=True)
        return None


async def watch(
    stream: IEventStream,
    match: LogMatcher,
    *,
    filters: Optional[Mapping[str, Any]] = None,
    from_block: int = 0,
    logger: Optional[logging.Logger] = None,
) -> EventLog:
    """Wait for the first matching log on a live subscription.

    The subscription is released on every exit path, including cancellation.
    Stream errors are logged; only a matching log or cancellation ends the
    wait. A subscription that cannot be opened leaves the wait pending.
    """
    log = logger or _log
    result: asyncio.Future[EventLog] = asyncio.get_running_loop().create_future()

    def on_log(entry: EventLog) -> None:
        if not result.done() and match(entry):
            result.set_result(entry)

    def on_error(exc: BaseException) -> None:
        log.warning("event_stream_error", extra={"phase": "subscription"}, exc_info=exc)

    subscription = await _open(stream, on_log, filters=filters, from_block=from_block, on_error=on_error, log=log)
    try:
        return await result
    finally:
        if subscription is not None:
            await release(subscription, logger=log)


async def replay_then_subscribe(
    stream: IEventStream,
    match: LogMatcher,
    *,
    filters: Optional[Mapping[str, Any]] = None,
    from_block: int = 0,
    to_block: Optional[int] = None,
    on_replay_miss: Optional[Callable[[], None]] = None,
    logger: Optional[logging.Logger] = None,
) -> EventLog:
    """Return the first matching log from history, else from the live stream."""
    log = logger or _log
    try:
        history = await stream.get_logs(filters=filters, from_block=from_block, to_block=to_block)
    except Exception:
        log.warning("event_stream_error", extra={"phase": "replay"}, exc_info=True)
        history = []
    for entry in history:
        if match(entry):
            return entry
    if on_replay_miss is not None:
        on_replay_miss()
    return await watch(stream, match, filters=filters, from_block=from_block, logger=log)


async def race(*awaitables: Awaitable[T]) -> T:
    """First awaitable to finish wins; the rest are cancelled and drained before returning."""
    if not awaitables:
        raise ValueError("race() needs at least one awaitable")
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    finished: List[asyncio.Future] = []

    def on_done(task: asyncio.Future) -> None:
        if not finished:
            finished.append(task)

    for task in tasks:
        task.add_done_callback(on_done)
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    # completion order, not argument order, decides the winner
    return finished[0].result()


__all__ = ["LogMatcher", "release", "watch", "replay_then_subscribe", "race"]
