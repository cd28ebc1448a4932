"""Unit tests for the replay/subscribe and race combinators."""

import asyncio

import pytest

from xmarket.execution.events import race, replay_then_subscribe, watch
from xmarket.tests.stubs import StubEventStream, make_log


def _for_tx(tx_hash):
    return lambda entry: entry.tx_hash == tx_hash


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestReplayThenSubscribe:
    @pytest.mark.asyncio
    async def test_history_hit_opens_no_subscription(self):
        stream = StubEventStream()
        stream.history = [make_log("OrderFilled", "0xother"), make_log("OrderFilled", "0xtx", filledQty=3)]
        missed = []

        entry = await replay_then_subscribe(stream, _for_tx("0xtx"), on_replay_miss=lambda: missed.append(True))

        assert entry.args["filledQty"] == 3
        assert stream.subscriptions == []
        assert missed == []

    @pytest.mark.asyncio
    async def test_passes_filters_and_range(self):
        stream = StubEventStream()
        stream.history = [make_log("OrderFilled", "0xtx")]

        await replay_then_subscribe(stream, _for_tx("0xtx"), filters={"maker": "0x1"}, from_block=4, to_block=9)

        assert stream.get_logs_calls == [{"filters": {"maker": "0x1"}, "from_block": 4, "to_block": 9}]

    @pytest.mark.asyncio
    async def test_falls_back_to_live_and_releases(self):
        stream = StubEventStream()
        missed = asyncio.Event()
        task = asyncio.ensure_future(replay_then_subscribe(stream, _for_tx("0xtx"), on_replay_miss=missed.set))

        await missed.wait()
        await _settle()
        assert len(stream.active) == 1

        stream.push(make_log("OrderFilled", "0xother"))
        stream.push(make_log("OrderFilled", "0xtx", filledQty=7))
        entry = await task

        assert entry.args["filledQty"] == 7
        assert stream.active == []
        assert stream.unsubscribe_calls == 1

    @pytest.mark.asyncio
    async def test_replay_error_is_logged_and_treated_as_miss(self, caplog):
        stream = StubEventStream()
        stream.fail_get_logs = ConnectionError("rpc down")
        task = asyncio.ensure_future(replay_then_subscribe(stream, _for_tx("0xtx")))
        await _settle()

        stream.push(make_log("OrderFilled", "0xtx"))
        entry = await task

        assert entry.tx_hash == "0xtx"
        assert any(r.getMessage() == "event_stream_error" for r in caplog.records)


class TestWatch:
    @pytest.mark.asyncio
    async def test_cancellation_releases_subscription(self):
        stream = StubEventStream()
        task = asyncio.ensure_future(watch(stream, _for_tx("0xtx")))
        await _settle()
        assert len(stream.active) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert stream.active == []

    @pytest.mark.asyncio
    async def test_stream_errors_do_not_end_the_wait(self, caplog):
        stream = StubEventStream()
        task = asyncio.ensure_future(watch(stream, _for_tx("0xtx")))
        await _settle()

        stream.push_error(ConnectionResetError("socket closed"))
        await asyncio.sleep(0)
        assert not task.done()

        stream.push(make_log("OrderFilled", "0xtx"))
        assert (await task).tx_hash == "0xtx"
        assert any(r.getMessage() == "event_stream_error" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unsubscribe_failure_does_not_mask_result(self, caplog):
        stream = StubEventStream()
        stream.fail_unsubscribe = ConnectionError("gone")
        task = asyncio.ensure_future(watch(stream, _for_tx("0xtx")))
        await _settle()

        stream.push(make_log("OrderFilled", "0xtx", filledQty=1))

        assert (await task).args["filledQty"] == 1
        assert any(r.getMessage() == "unsubscribe_failed" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_subscribe_failure_keeps_waiting(self, caplog):
        stream = StubEventStream()
        stream.fail_subscribe = ConnectionRefusedError("ws refused")
        task = asyncio.ensure_future(watch(stream, _for_tx("0xtx")))
        await _settle()

        assert not task.done()
        record = next(r for r in caplog.records if r.getMessage() == "event_stream_error")
        assert record.phase == "subscribe"

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert stream.unsubscribe_calls == 0

    @pytest.mark.asyncio
    async def test_cancelled_while_subscribing_releases_late_subscription(self):
        stream = StubEventStream()
        stream.subscribe_gate = asyncio.Event()
        task = asyncio.ensure_future(watch(stream, _for_tx("0xtx")))
        await _settle()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert stream.subscriptions == []

        stream.subscribe_gate.set()
        await _settle()

        assert len(stream.subscriptions) == 1
        assert stream.active == []
        assert stream.unsubscribe_calls == 1

    @pytest.mark.asyncio
    async def test_replay_miss_with_failed_subscribe_stays_pending(self, caplog):
        stream = StubEventStream()
        stream.fail_subscribe = ConnectionRefusedError("ws refused")
        task = asyncio.ensure_future(replay_then_subscribe(stream, _for_tx("0xtx")))
        await _settle()

        assert not task.done()
        assert any(getattr(r, "phase", None) == "subscribe" for r in caplog.records)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestRace:
    @pytest.mark.asyncio
    async def test_first_result_wins_and_losers_are_drained(self):
        cleaned = []

        async def slow():
            try:
                await asyncio.sleep(10)
            finally:
                cleaned.append("slow")

        async def fast():
            await asyncio.sleep(0)
            return "fast"

        assert await race(slow(), fast()) == "fast"
        assert cleaned == ["slow"]

    @pytest.mark.asyncio
    async def test_first_error_wins(self):
        async def fails():
            raise LookupError("nope")

        async def never():
            await asyncio.Event().wait()

        with pytest.raises(LookupError):
            await race(never(), fails())

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_all(self):
        cleaned = []

        async def waiter(name):
            try:
                await asyncio.Event().wait()
            finally:
                cleaned.append(name)

        task = asyncio.ensure_future(race(waiter("a"), waiter("b")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sorted(cleaned) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_requires_an_awaitable(self):
        with pytest.raises(ValueError):
            await race()
