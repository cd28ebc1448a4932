"""Unit tests for the transaction outcome resolver."""

import asyncio

import pytest

from xmarket.execution.errors import ErrorKind, MarketError
from xmarket.execution.models import OutcomeKind
from xmarket.execution.resolver import OrderTransactionInfo
from xmarket.tests.stubs import MAKER, StubMarketContract, make_log, make_signed_order

TX = "0xabc123"


def _resolver(contract, block_number=None):
    return OrderTransactionInfo(
        market_contract=contract,
        order=make_signed_order(),
        tx_hash=TX,
        block_number=block_number,
    )


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


class TestBlockRange:
    def test_range_from_block_number(self):
        info = _resolver(StubMarketContract(), block_number=12)
        assert (info.from_block, info.to_block) == (12, 12)

    def test_range_without_block_number(self):
        info = _resolver(StubMarketContract())
        assert (info.from_block, info.to_block) == (0, None)


class TestFilledQty:
    """Primary branch against the error branch."""

    @pytest.mark.asyncio
    async def test_historical_fill_resolves_without_subscriptions(self):
        contract = StubMarketContract()
        contract.filled.history = [make_log("OrderFilled", TX, block_number=12, filledQty=2)]
        info = _resolver(contract, block_number=12)

        assert await info.filled_qty() == 2
        assert contract.filled.subscriptions == []
        assert contract.errors.subscriptions == []
        assert contract.filled.get_logs_calls == [{"filters": {"maker": MAKER}, "from_block": 12, "to_block": 12}]

    @pytest.mark.asyncio
    async def test_tx_hash_match_ignores_case(self):
        contract = StubMarketContract()
        contract.filled.history = [make_log("OrderFilled", TX.upper().replace("0X", "0x"), filledQty=4)]
        assert await _resolver(contract).filled_qty() == 4

    @pytest.mark.asyncio
    async def test_live_fill_after_replay_miss(self):
        contract = StubMarketContract()
        info = _resolver(contract)
        task = asyncio.ensure_future(info.filled_qty())
        await _settle()

        assert len(contract.filled.active) == 1
        assert len(contract.errors.active) == 1

        contract.filled.push(make_log("OrderFilled", "0xunrelated", filledQty=9))
        contract.filled.push(make_log("OrderFilled", TX, filledQty=5))

        assert await task == 5
        assert contract.filled.active == []
        assert contract.errors.active == []

    @pytest.mark.asyncio
    async def test_expired_error_first_wins(self):
        contract = StubMarketContract()
        info = _resolver(contract)
        task = asyncio.ensure_future(info.filled_qty())
        await _settle()

        contract.errors.push(make_log("Error", TX, errorCode=0))
        contract.filled.push(make_log("OrderFilled", TX, filledQty=5))

        with pytest.raises(MarketError) as excinfo:
            await task
        assert excinfo.value.kind is ErrorKind.ORDER_EXPIRED
        assert contract.filled.active == []
        assert contract.errors.active == []

        # a fill observed afterwards does not change the settled outcome
        outcome = await info.filled_outcome()
        assert outcome.error is ErrorKind.ORDER_EXPIRED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,kind", [(1, ErrorKind.ORDER_DEAD), (42, ErrorKind.UNKNOWN_ORDER_ERROR)])
    async def test_error_codes(self, code, kind):
        contract = StubMarketContract()
        info = _resolver(contract)
        task = asyncio.ensure_future(info.filled_outcome())
        await _settle()

        contract.errors.push(make_log("Error", TX, errorCode=code))

        outcome = await task
        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error is kind

    @pytest.mark.asyncio
    async def test_error_for_other_tx_is_ignored(self):
        contract = StubMarketContract()
        task = asyncio.ensure_future(_resolver(contract).filled_qty())
        await _settle()

        contract.errors.push(make_log("Error", "0xother", errorCode=0))
        contract.filled.push(make_log("OrderFilled", TX, filledQty=1))

        assert await task == 1

    @pytest.mark.asyncio
    async def test_repeat_calls_share_one_resolution(self):
        contract = StubMarketContract()
        contract.filled.history = [make_log("OrderFilled", TX, filledQty=3)]
        info = _resolver(contract)

        assert await info.filled_qty() == 3
        assert await info.filled_qty() == 3
        assert len(contract.filled.get_logs_calls) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_failure_is_logged_not_raised(self, caplog):
        contract = StubMarketContract()
        contract.filled.fail_unsubscribe = ConnectionError("gone")
        contract.errors.fail_unsubscribe = ConnectionError("gone")
        task = asyncio.ensure_future(_resolver(contract).filled_qty())
        await _settle()

        contract.filled.push(make_log("OrderFilled", TX, filledQty=6))

        assert await task == 6
        assert contract.filled.unsubscribe_calls == 1
        assert contract.errors.unsubscribe_calls == 1
        assert any(r.getMessage() == "unsubscribe_failed" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_error_stream_subscribe_failure_does_not_fail_fill(self, caplog):
        contract = StubMarketContract()
        contract.errors.fail_subscribe = ConnectionRefusedError("ws refused")
        task = asyncio.ensure_future(_resolver(contract).filled_qty())
        await _settle()
        assert not task.done()

        contract.filled.push(make_log("OrderFilled", TX, filledQty=5))

        assert await task == 5
        assert contract.filled.active == []
        assert any(r.getMessage() == "event_stream_error" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_fill_stream_subscribe_failure_leaves_error_branch(self):
        contract = StubMarketContract()
        contract.filled.fail_subscribe = ConnectionRefusedError("ws refused")
        task = asyncio.ensure_future(_resolver(contract).filled_outcome())
        await _settle()
        assert not task.done()

        contract.errors.push(make_log("Error", TX, errorCode=0))
        outcome = await task

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error is ErrorKind.ORDER_EXPIRED
        assert contract.errors.active == []

    @pytest.mark.asyncio
    async def test_external_cancellation_releases_subscriptions(self):
        contract = StubMarketContract()
        task = asyncio.ensure_future(_resolver(contract).filled_qty())
        await _settle()
        assert len(contract.filled.active) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await _settle()

        assert contract.filled.active == []
        assert contract.errors.active == []


class TestCancelledQty:
    @pytest.mark.asyncio
    async def test_cancel_from_history(self):
        contract = StubMarketContract()
        contract.cancelled.history = [make_log("OrderCancelled", TX, cancelledQty=-10)]
        info = _resolver(contract, block_number=3)

        outcome = await info.cancelled_outcome()

        assert outcome.kind is OutcomeKind.CANCELLED
        assert outcome.qty == -10

    @pytest.mark.asyncio
    async def test_accessors_race_independently(self):
        contract = StubMarketContract()
        contract.cancelled.history = [make_log("OrderCancelled", TX, cancelledQty=4)]
        info = _resolver(contract)
        filled = asyncio.ensure_future(info.filled_qty())

        assert await info.cancelled_qty() == 4
        await _settle()
        assert not filled.done()

        contract.errors.push(make_log("Error", TX, errorCode=1))
        with pytest.raises(MarketError) as excinfo:
            await filled
        assert excinfo.value.kind is ErrorKind.ORDER_DEAD
