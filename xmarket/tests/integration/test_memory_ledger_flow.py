"""End-to-end order lifecycle against the in-memory ledger with real signatures."""

from dataclasses import dataclass

import pytest

from xmarket.app.config import ClientConfig
from xmarket.execution.errors import ErrorKind, MarketError
from xmarket.execution.models import NULL_ADDRESS, CollateralEventType, OutcomeKind, UserPosition
from xmarket.execution.resolver import OrderTransactionInfo
from xmarket.execution.router import Market, create_market
from xmarket.ledger.memory import InMemoryLedger, MemoryMarketContract, MemoryToken
from xmarket.ledger.signer import LocalAccountSigner
from xmarket.tests.stubs import FakeClock

MAKER_KEY = "0x" + "11" * 32
TAKER_KEY = "0x" + "22" * 32
START_MS = 1_700_000_000_000
EXPIRY = START_MS // 1000 + 3600
DEPOSIT = 1_000_000


@dataclass
class Env:
    clock: FakeClock
    ledger: InMemoryLedger
    market: Market
    contract: MemoryMarketContract
    usd: MemoryToken
    maker: str
    taker: str


@pytest.fixture
async def env() -> Env:
    clock = FakeClock(start_ms=START_MS)
    ledger = InMemoryLedger(clock=clock)
    signer = LocalAccountSigner.from_keys(MAKER_KEY, TAKER_KEY)
    maker, taker = signer.addresses
    usd = ledger.deploy_token("USD")
    contract = ledger.deploy_market_contract(
        name=f"ETH_USD_BIN_{EXPIRY}_TEST",
        collateral_token=usd,
        price_floor=0,
        price_cap=200000,
        qty_multiplier=1,
        expiration_timestamp=EXPIRY,
    )
    config = ClientConfig(
        network_id=1337,
        order_lib_address=ledger.order_lib_contract.address,
        market_token_address=ledger.market_token_contract.address,
    )
    market = create_market(ledger, config, signer=signer, clock=clock, configure_logging=False)

    for user in (maker, taker):
        usd.mint(user, DEPOSIT)
        ledger.market_token_contract.enable_user(contract.address, user)
        await market.collateral.set_allowance(usd.address, contract.pool.address, DEPOSIT, user)
        await market.deposit_collateral(contract.address, DEPOSIT, user)

    return Env(clock, ledger, market, contract, usd, maker, taker)


async def _order(env: Env, *, qty: int = 100, price: int = 100000, expiration: int = EXPIRY):
    return await env.market.create_signed_order(
        contract_address=env.contract.address,
        expiration_timestamp=expiration,
        fee_recipient=NULL_ADDRESS,
        maker=env.maker,
        maker_fee=0,
        taker=NULL_ADDRESS,
        taker_fee=0,
        order_qty=qty,
        price=price,
    )


class TestOrderLifecycle:
    @pytest.mark.asyncio
    async def test_signed_order_verifies_on_chain(self, env: Env):
        order = await _order(env)
        assert await env.market.orders.is_valid_signature(order)

    @pytest.mark.asyncio
    async def test_trade_fill_then_cancel(self, env: Env):
        order = await _order(env)

        trade = await env.market.trade_order(order, 2, env.taker)
        assert await trade.filled_qty() == 2
        assert trade.block_number == await env.ledger.block_number()

        refreshed = await env.market.orders.refresh_order(order)
        assert refreshed.remaining_qty == 98

        cancel = await env.market.cancel_order(refreshed, 10, env.maker)
        assert await cancel.cancelled_qty() == 10
        assert (await env.market.orders.refresh_order(order)).remaining_qty == 88

        fills = await env.market.orders.get_contract_fills(env.contract.address, user=env.taker, side="taker")
        assert [(f.filled_qty, f.price) for f in fills] == [(2, 100000)]

    @pytest.mark.asyncio
    async def test_collateral_locked_by_trade(self, env: Env):
        order = await _order(env, qty=-5, price=50000)
        trade = await env.market.trade_order(order, -5, env.taker)
        assert await trade.filled_qty() == -5

        # short maker risks cap - price, long taker risks price - floor
        balances = env.market.collateral
        assert await balances.get_user_account_balance(env.contract.address, env.maker) == DEPOSIT - 5 * 150000
        assert await balances.get_user_account_balance(env.contract.address, env.taker) == DEPOSIT - 5 * 50000

        positions = await env.market.get_user_positions(env.contract.address, env.taker)
        assert positions == [UserPosition(price=50000, qty=5)]

    @pytest.mark.asyncio
    async def test_pipeline_stops_trade_exceeding_collateral(self, env: Env):
        order = await _order(env, qty=100)
        with pytest.raises(MarketError) as excinfo:
            await env.market.trade_order(order, 11, env.taker)
        assert excinfo.value.kind is ErrorKind.INSUFFICIENT_COLLATERAL_BALANCE
        assert env.contract.filled.history == []


class TestExpiry:
    @pytest.mark.asyncio
    async def test_watcher_and_on_chain_error(self, env: Env):
        expiration = START_MS // 1000 + 60
        order = await _order(env, expiration=expiration)
        order_hash = await env.market.create_order_hash(order)

        watcher = env.market.create_expiration_watcher()
        fired = []
        watcher.add_order(order_hash, expiration * 1000)
        watcher.subscribe(fired.append)
        env.clock.advance(60_000)
        assert fired == [order_hash]

        with pytest.raises(MarketError) as excinfo:
            await env.market.trade_order(order, 1, env.taker)
        assert excinfo.value.kind is ErrorKind.ORDER_EXPIRED

        # submitted straight to the contract, the trade lands but only emits an error log
        sig = order.ec_signature
        tx_hash = await env.contract.trade_order(
            order.order_addresses,
            order.unsigned_order_values,
            order.order_qty,
            1,
            sig.v,
            sig.r,
            sig.s,
            sender=env.taker,
        )
        tx = await env.ledger.get_transaction(tx_hash)
        info = OrderTransactionInfo(
            market_contract=env.contract,
            order=order,
            tx_hash=tx_hash,
            block_number=tx.block_number,
        )

        outcome = await info.filled_outcome()

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error is ErrorKind.ORDER_EXPIRED
        assert env.contract.filled.active_subscriptions == 0
        assert env.contract.errors.active_subscriptions == 0
        watcher.unsubscribe()


class TestCollateralAndSettlement:
    @pytest.mark.asyncio
    async def test_deposit_withdraw_history(self, env: Env):
        await env.market.withdraw_collateral(env.contract.address, 100000, env.maker)

        events = await env.market.collateral.get_collateral_events(env.contract.address, user=env.maker)

        assert [(e.type, e.amount) for e in events] == [
            (CollateralEventType.DEPOSIT, DEPOSIT),
            (CollateralEventType.WITHDRAWAL, 100000),
        ]
        assert await env.usd.balance_of(env.maker) == 100000
        meta = await env.market.get_contract_meta_data(env.contract.address)
        assert meta.collateral_pool_balance == 2 * DEPOSIT - 100000

    @pytest.mark.asyncio
    async def test_settle_and_close_pays_out_positions(self, env: Env):
        order = await _order(env)
        trade = await env.market.trade_order(order, 2, env.taker)
        await trade.filled_qty()
        address = env.contract.address
        with pytest.raises(IndexError):
            await env.market.positions.get_user_position(address, env.maker, 5)

        env.contract.settle(150000)
        await env.market.settle_and_close(address, env.maker)
        await env.market.settle_and_close(address, env.taker)

        balances = env.market.collateral
        assert await balances.get_user_account_balance(address, env.maker) == DEPOSIT + 2 * 50000
        assert await balances.get_user_account_balance(address, env.taker) == DEPOSIT - 2 * 50000
        with pytest.raises(MarketError) as excinfo:
            await env.market.get_user_positions(address, env.maker)
        assert excinfo.value.kind is ErrorKind.USER_HAS_NO_ASSOCIATED_POSITIONS

    @pytest.mark.asyncio
    async def test_settlement_closes_trading(self, env: Env):
        order = await _order(env)
        env.contract.settle(100000)
        assert await env.market.contracts.is_contract_settled(env.contract.address)
        with pytest.raises(MarketError) as excinfo:
            await env.market.trade_order(order, 1, env.taker)
        assert excinfo.value.kind is ErrorKind.CONTRACT_ALREADY_SETTLED

    @pytest.mark.asyncio
    async def test_settlement_records_oracle_result(self, env: Env):
        meta = await env.market.get_contract_meta_data(env.contract.address)
        assert meta.last_price_query_result == ""

        env.contract.settle(123456, query_result="1234.56")
        meta = await env.market.get_contract_meta_data(env.contract.address)

        assert (meta.is_settled, meta.settlement_price) == (True, 123456)
        assert meta.last_price_query_result == "1234.56"
        assert env.contract.address in await env.ledger.contract_registry_contract.get_address_white_list()
