"""Deterministic in-process ledger for tests and local experiments.

Implements every ledger protocol the client talks to: market contracts with
their collateral pools, ERC20 tokens, the market token, the order library,
the contract registry, event streams with history and live subscriptions,
and block numbers. Transactions mine immediately unless ``auto_mine`` is
disabled, in which case they wait for ``mine()``.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from eth_utils import keccak, to_bytes, to_checksum_address, to_hex

from xmarket.core.clock import IClock, WallClock
from xmarket.execution.collateral import needed_collateral
from xmarket.execution.errors import ORDER_DEAD_CODE, ORDER_EXPIRED_CODE
from xmarket.execution.models import NULL_ADDRESS, ECSignature
from xmarket.ledger.interface import ErrorHandler, EventLog, LogHandler, TransactionInfo
from xmarket.ledger.signer import recover_signer


class TransactionReverted(Exception):
    """Raised when a submitted transaction would revert on chain."""


def compute_order_hash(
    contract_address: str,
    order_addresses: Sequence[str],
    unsigned_order_values: Sequence[int],
    order_qty: int,
) -> str:
    """keccak256 over the tightly packed order fields, as the order library computes it."""
    packed = to_bytes(hexstr=contract_address)
    for address in order_addresses:
        packed += to_bytes(hexstr=address)
    for value in unsigned_order_values:
        packed += int(value).to_bytes(32, "big")
    packed += int(order_qty).to_bytes(32, "big", signed=True)
    return to_hex(keccak(packed))


def _key(address: str) -> str:
    return address.lower()


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _matches(args: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    if not filters:
        return True
    for name, expected in filters.items():
        actual = args.get(name)
        if isinstance(expected, str) and isinstance(actual, str):
            if expected.lower() != actual.lower():
                return False
        elif actual != expected:
            return False
    return True


# ----------------------------------------------------------------------
# Event streams


class MemorySubscription:
    def __init__(
        self,
        stream: "MemoryEventStream",
        handler: LogHandler,
        filters: Optional[Mapping[str, Any]],
        from_block: int,
        on_error: Optional[ErrorHandler],
    ) -> None:
        self._stream = stream
        self.handler = handler
        self.filters = dict(filters or {})
        self.from_block = from_block
        self.on_error = on_error
        self.active = True

    def deliver(self, entry: EventLog) -> None:
        if not self.active or entry.block_number < self.from_block or not _matches(entry.args, self.filters):
            return
        self.handler(entry)

    async def unsubscribe(self) -> None:
        if self._stream.fail_unsubscribe is not None:
            raise self._stream.fail_unsubscribe
        if self.active:
            self.active = False
            self._stream.detach(self)


class MemoryEventStream:
    """History plus live fan-out for one event type of one contract.

    A new subscription first receives the matching history from
    ``from_block`` on, then every log mined afterwards.
    """

    def __init__(self, name: str, address: str) -> None:
        self.name = name
        self.address = address
        self.history: List[EventLog] = []
        self._subscriptions: List[MemorySubscription] = []
        self.subscriptions_opened = 0
        self.fail_get_logs: Optional[BaseException] = None
        self.fail_unsubscribe: Optional[BaseException] = None

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    async def get_logs(
        self,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        from_block: int = 0,
        to_block: Optional[int] = None,
    ) -> List[EventLog]:
        if self.fail_get_logs is not None:
            raise self.fail_get_logs
        return [
            entry
            for entry in self.history
            if entry.block_number >= from_block
            and (to_block is None or entry.block_number <= to_block)
            and _matches(entry.args, filters)
        ]

    async def subscribe(
        self,
        handler: LogHandler,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        from_block: int = 0,
        on_error: Optional[ErrorHandler] = None,
    ) -> MemorySubscription:
        subscription = MemorySubscription(self, handler, filters, from_block, on_error)
        self._subscriptions.append(subscription)
        self.subscriptions_opened += 1
        for entry in list(self.history):
            subscription.deliver(entry)
        return subscription

    def detach(self, subscription: MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def emit(self, entry: EventLog) -> None:
        self.history.append(entry)
        for subscription in list(self._subscriptions):
            subscription.deliver(entry)

    def raise_error(self, exc: BaseException) -> None:
        """Push a transport error to every live subscriber."""
        for subscription in list(self._subscriptions):
            if subscription.on_error is not None:
                subscription.on_error(exc)


# ----------------------------------------------------------------------
# Contracts


@dataclass
class _PendingTx:
    info: TransactionInfo
    logs: List[Tuple[MemoryEventStream, Dict[str, Any]]] = field(default_factory=list)


class MemoryToken:
    def __init__(self, ledger: "InMemoryLedger", address: str, symbol: str) -> None:
        self._ledger = ledger
        self.address = address
        self.symbol = symbol
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}

    def mint(self, owner: str, amount: int) -> None:
        self.balances[_key(owner)] = self.balances.get(_key(owner), 0) + amount

    def move(self, source: str, dest: str, amount: int) -> None:
        if self.balances.get(_key(source), 0) < amount:
            raise TransactionReverted(f"{self.symbol}: insufficient balance")
        self.balances[_key(source)] -= amount
        self.mint(dest, amount)

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        key = (_key(owner), _key(spender))
        if self.allowances.get(key, 0) < amount:
            raise TransactionReverted(f"{self.symbol}: insufficient allowance")
        self.allowances[key] -= amount

    async def balance_of(self, owner: str) -> int:
        return self.balances.get(_key(owner), 0)

    async def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((_key(owner), _key(spender)), 0)

    async def approve(self, spender: str, amount: int, *, sender: str) -> str:
        def effect(tx: _PendingTx) -> None:
            self.allowances[(_key(sender), _key(spender))] = amount

        return self._ledger.submit(sender, self.address, "approve", (spender, amount), effect)

    async def transfer(self, to: str, amount: int, *, sender: str) -> str:
        def effect(tx: _PendingTx) -> None:
            self.move(sender, to, amount)

        return self._ledger.submit(sender, self.address, "transfer", (to, amount), effect)


class MemoryMarketToken(MemoryToken):
    def __init__(self, ledger: "InMemoryLedger", address: str, symbol: str = "MKT") -> None:
        super().__init__(ledger, address, symbol)
        self._enabled: Set[Tuple[str, str]] = set()

    def enable_user(self, contract_address: str, user: str) -> None:
        self._enabled.add((_key(contract_address), _key(user)))

    async def is_user_enabled_for_contract(self, contract_address: str, user: str) -> bool:
        return (_key(contract_address), _key(user)) in self._enabled


class MemoryOrderLib:
    def __init__(self, address: str) -> None:
        self.address = address

    async def create_order_hash(
        self,
        contract_address: str,
        order_addresses: Sequence[str],
        unsigned_order_values: Sequence[int],
        order_qty: int,
    ) -> str:
        return compute_order_hash(contract_address, order_addresses, unsigned_order_values, order_qty)

    async def is_valid_signature(self, signer: str, order_hash: str, v: int, r: str, s: str) -> bool:
        return _is_valid_signature(signer, order_hash, ECSignature(v=v, r=r, s=s))


def _is_valid_signature(signer: str, order_hash: str, signature: ECSignature) -> bool:
    try:
        recovered = recover_signer(order_hash, signature)
    except Exception:
        # ecrecover yields the zero address for malformed signatures
        logging.getLogger("xmarket.ledger.memory").debug("signature_recovery_failed", exc_info=True)
        return False
    return recovered.lower() == signer.lower()


class MemoryContractRegistry:
    def __init__(self, address: str) -> None:
        self.address = address
        self.white_list: List[str] = []

    def add(self, contract_address: str) -> None:
        if all(_key(a) != _key(contract_address) for a in self.white_list):
            self.white_list.append(contract_address)

    async def get_address_white_list(self) -> List[str]:
        return list(self.white_list)


class MemoryCollateralPool:
    def __init__(self, ledger: "InMemoryLedger", address: str) -> None:
        self._ledger = ledger
        self.address = address
        self.contract: Optional["MemoryMarketContract"] = None
        self.balances: Dict[str, int] = {}
        self.positions: Dict[str, List[List[int]]] = {}
        self.balance_updated = MemoryEventStream("UpdatedUserBalance", address)

    def _contract(self) -> "MemoryMarketContract":
        if self.contract is None:
            raise TransactionReverted("collateral pool is not linked to a contract")
        return self.contract

    def credit(self, user: str, amount: int) -> None:
        self.balances[_key(user)] = self.balances.get(_key(user), 0) + amount

    def lock(self, user: str, amount: int) -> None:
        if self.balances.get(_key(user), 0) < amount:
            raise TransactionReverted("insufficient collateral balance")
        self.balances[_key(user)] -= amount

    def add_position(self, user: str, price: int, qty: int) -> None:
        self.positions.setdefault(_key(user), []).append([price, qty])

    async def collateral_pool_balance(self) -> int:
        token = self._ledger.token_for(self._contract().collateral_token_address_value)
        return token.balances.get(_key(self.address), 0)

    async def get_user_account_balance(self, user: str) -> int:
        return self.balances.get(_key(user), 0)

    async def get_user_net_position(self, user: str) -> int:
        return sum(qty for _price, qty in self.positions.get(_key(user), []))

    async def get_user_position_count(self, user: str) -> int:
        return len(self.positions.get(_key(user), []))

    async def get_user_position(self, user: str, index: int) -> Tuple[int, int]:
        price, qty = self.positions[_key(user)][index]
        return price, qty

    async def deposit_tokens_for_trading(self, amount: int, *, sender: str) -> str:
        token = self._ledger.token_for(self._contract().collateral_token_address_value)

        def effect(tx: _PendingTx) -> None:
            if token.balances.get(_key(sender), 0) < amount:
                raise TransactionReverted("insufficient token balance")
            token.spend_allowance(sender, self.address, amount)
            token.move(sender, self.address, amount)
            self.credit(sender, amount)
            tx.logs.append((self.balance_updated, {"user": sender, "balance": self.balances[_key(sender)]}))

        return self._ledger.submit(sender, self.address, "depositTokensForTrading", (amount,), effect)

    async def withdraw_tokens(self, amount: int, *, sender: str) -> str:
        token = self._ledger.token_for(self._contract().collateral_token_address_value)

        def effect(tx: _PendingTx) -> None:
            self.lock(sender, amount)
            token.move(self.address, sender, amount)
            tx.logs.append((self.balance_updated, {"user": sender, "balance": self.balances[_key(sender)]}))

        return self._ledger.submit(sender, self.address, "withdrawTokens", (amount,), effect)

    async def settle_and_close(self, *, sender: str) -> str:
        contract = self._contract()

        def effect(tx: _PendingTx) -> None:
            if not contract.settled:
                raise TransactionReverted("contract is not settled")
            payout = 0
            for price, qty in self.positions.pop(_key(sender), []):
                payout += needed_collateral(
                    contract.floor, contract.cap, contract.multiplier, qty, contract.settlement
                )
            self.credit(sender, payout)
            tx.logs.append((self.balance_updated, {"user": sender, "balance": self.balances[_key(sender)]}))

        return self._ledger.submit(sender, self.address, "settleAndClose", (), effect)

    def balance_updated_events(self) -> MemoryEventStream:
        return self.balance_updated


class MemoryMarketContract:
    def __init__(
        self,
        ledger: "InMemoryLedger",
        address: str,
        *,
        name: str,
        creator: str,
        pool: MemoryCollateralPool,
        collateral_token_address: str,
        price_floor: int,
        price_cap: int,
        qty_multiplier: int,
        expiration_timestamp: int,
        price_decimal_places: int,
        oracle_data_source: str = "URL",
        oracle_query: str = "",
    ) -> None:
        self._ledger = ledger
        self.address = address
        self.name = name
        self.creator_address = creator
        self.pool = pool
        self.collateral_token_address_value = collateral_token_address
        self.floor = price_floor
        self.cap = price_cap
        self.multiplier = qty_multiplier
        self.expiration = expiration_timestamp
        self.decimals = price_decimal_places
        self.data_source = oracle_data_source
        self.query = oracle_query
        self.last_query_result = ""
        self.settled = False
        self.settlement = 0
        self.last = 0
        self.consumed: Dict[str, int] = {}
        self.filled = MemoryEventStream("OrderFilled", address)
        self.cancelled = MemoryEventStream("OrderCancelled", address)
        self.errors = MemoryEventStream("Error", address)

    def settle(self, settlement_price: int, *, query_result: Optional[str] = None) -> None:
        self.settled = True
        self.settlement = settlement_price
        self.last_query_result = str(settlement_price) if query_result is None else query_result

    async def contract_name(self) -> str:
        return self.name

    async def creator(self) -> str:
        return self.creator_address

    async def price_floor(self) -> int:
        return self.floor

    async def price_cap(self) -> int:
        return self.cap

    async def price_decimal_places(self) -> int:
        return self.decimals

    async def qty_multiplier(self) -> int:
        return self.multiplier

    async def expiration_timestamp(self) -> int:
        return self.expiration

    async def is_settled(self) -> bool:
        return self.settled

    async def settlement_price(self) -> int:
        return self.settlement

    async def last_price(self) -> int:
        return self.last

    async def collateral_pool_address(self) -> str:
        return self.pool.address

    async def collateral_token_address(self) -> str:
        return self.collateral_token_address_value

    async def oracle_query(self) -> str:
        return self.query

    async def oracle_data_source(self) -> str:
        return self.data_source

    async def last_price_query_result(self) -> str:
        return self.last_query_result

    async def get_qty_filled_or_cancelled_from_order(self, order_hash: str) -> int:
        return self.consumed.get(order_hash.lower(), 0)

    def _live_remaining(self, tx: _PendingTx, order_hash: str, order_qty: int, expiration: int) -> Optional[int]:
        """Remaining signed qty, or None after recording the error log the contract emits."""
        if self._ledger.clock.now() >= expiration:
            tx.logs.append((self.errors, {"errorCode": ORDER_EXPIRED_CODE, "orderHash": order_hash}))
            return None
        remaining = order_qty - self.consumed.get(order_hash.lower(), 0)
        if remaining == 0:
            tx.logs.append((self.errors, {"errorCode": ORDER_DEAD_CODE, "orderHash": order_hash}))
            return None
        return remaining

    async def trade_order(
        self,
        order_addresses: Sequence[str],
        unsigned_order_values: Sequence[int],
        order_qty: int,
        fill_qty: int,
        v: int,
        r: str,
        s: str,
        *,
        sender: str,
    ) -> str:
        maker, taker, fee_recipient = order_addresses
        maker_fee, taker_fee, price, expiration, _salt = unsigned_order_values
        order_hash = compute_order_hash(self.address, order_addresses, unsigned_order_values, order_qty)

        def effect(tx: _PendingTx) -> None:
            if self.settled:
                raise TransactionReverted("contract already settled")
            if _key(taker) != NULL_ADDRESS and _key(taker) != _key(sender):
                raise TransactionReverted("invalid taker")
            if _sign(order_qty) != _sign(fill_qty):
                raise TransactionReverted("buy/sell mismatch")
            if not _is_valid_signature(maker, order_hash, ECSignature(v=v, r=r, s=s)):
                raise TransactionReverted("invalid signature")
            remaining = self._live_remaining(tx, order_hash, order_qty, expiration)
            if remaining is None:
                return
            filled = min(abs(fill_qty), abs(remaining)) * _sign(order_qty)
            maker_need = needed_collateral(self.floor, self.cap, self.multiplier, filled, price)
            taker_need = needed_collateral(self.floor, self.cap, self.multiplier, -filled, price)
            if self.pool.balances.get(_key(maker), 0) < maker_need or self.pool.balances.get(_key(sender), 0) < taker_need:
                raise TransactionReverted("insufficient collateral balance")
            fees = ((maker, maker_fee), (sender, taker_fee)) if _key(fee_recipient) != NULL_ADDRESS else ()
            fee_token = self._ledger.market_token_contract
            for payer, fee in fees:
                if fee_token.balances.get(_key(payer), 0) < fee:
                    raise TransactionReverted("insufficient fee balance")
                if fee_token.allowances.get((_key(payer), _key(fee_recipient)), 0) < fee:
                    raise TransactionReverted("insufficient fee allowance")
            self.pool.lock(maker, maker_need)
            self.pool.lock(sender, taker_need)
            paid_maker_fee = paid_taker_fee = 0
            for payer, fee in fees:
                if fee > 0:
                    fee_token.spend_allowance(payer, fee_recipient, fee)
                    fee_token.move(payer, fee_recipient, fee)
            if fees:
                paid_maker_fee, paid_taker_fee = maker_fee, taker_fee
            self.pool.add_position(maker, price, filled)
            self.pool.add_position(sender, price, -filled)
            self.consumed[order_hash.lower()] = self.consumed.get(order_hash.lower(), 0) + filled
            self.last = price
            tx.logs.append(
                (
                    self.filled,
                    {
                        "maker": maker,
                        "taker": sender,
                        "feeRecipient": fee_recipient,
                        "filledQty": filled,
                        "paidMakerFee": paid_maker_fee,
                        "paidTakerFee": paid_taker_fee,
                        "price": price,
                        "orderHash": order_hash,
                    },
                )
            )

        args = (list(order_addresses), list(unsigned_order_values), order_qty, fill_qty, v, r, s)
        return self._ledger.submit(sender, self.address, "tradeOrder", args, effect)

    async def cancel_order(
        self,
        order_addresses: Sequence[str],
        unsigned_order_values: Sequence[int],
        order_qty: int,
        cancel_qty: int,
        *,
        sender: str,
    ) -> str:
        maker, _taker, fee_recipient = order_addresses
        expiration = unsigned_order_values[3]
        order_hash = compute_order_hash(self.address, order_addresses, unsigned_order_values, order_qty)

        def effect(tx: _PendingTx) -> None:
            if _key(sender) != _key(maker):
                raise TransactionReverted("only the maker can cancel")
            if _sign(order_qty) != _sign(cancel_qty):
                raise TransactionReverted("buy/sell mismatch")
            remaining = self._live_remaining(tx, order_hash, order_qty, expiration)
            if remaining is None:
                return
            cancelled = min(abs(cancel_qty), abs(remaining)) * _sign(order_qty)
            self.consumed[order_hash.lower()] = self.consumed.get(order_hash.lower(), 0) + cancelled
            tx.logs.append(
                (
                    self.cancelled,
                    {"maker": maker, "feeRecipient": fee_recipient, "cancelledQty": cancelled, "orderHash": order_hash},
                )
            )

        args = (list(order_addresses), list(unsigned_order_values), order_qty, cancel_qty)
        return self._ledger.submit(sender, self.address, "cancelOrder", args, effect)

    def filled_events(self) -> MemoryEventStream:
        return self.filled

    def cancelled_events(self) -> MemoryEventStream:
        return self.cancelled

    def error_events(self) -> MemoryEventStream:
        return self.errors


# ----------------------------------------------------------------------
# Ledger


class InMemoryLedger:
    """``ILedger`` test double backed by plain dictionaries."""

    def __init__(self, *, clock: Optional[IClock] = None, auto_mine: bool = True) -> None:
        self.clock = clock or WallClock()
        self.auto_mine = auto_mine
        self.log = logging.getLogger("xmarket.ledger.memory")
        self._block = 0
        self._address_seq = itertools.count(1)
        self._tx_seq = itertools.count(1)
        self._contracts: Dict[str, MemoryMarketContract] = {}
        self._pools: Dict[str, MemoryCollateralPool] = {}
        self._tokens: Dict[str, MemoryToken] = {}
        self._order_libs: Dict[str, MemoryOrderLib] = {}
        self._registries: Dict[str, MemoryContractRegistry] = {}
        self._transactions: Dict[str, TransactionInfo] = {}
        self._pending: List[_PendingTx] = []
        self.market_token_contract = self.deploy_market_token()
        self.order_lib_contract = self.deploy_order_lib()
        self.contract_registry_contract = self.deploy_contract_registry()

    # Deployment helpers -------------------------------------------------
    def new_address(self) -> str:
        digest = keccak(b"xmarket-memory-ledger:" + str(next(self._address_seq)).encode())
        return to_checksum_address(digest[-20:])

    def deploy_token(self, symbol: str = "TOKEN") -> MemoryToken:
        token = MemoryToken(self, self.new_address(), symbol)
        self._tokens[_key(token.address)] = token
        return token

    def deploy_market_token(self) -> MemoryMarketToken:
        token = MemoryMarketToken(self, self.new_address())
        self._tokens[_key(token.address)] = token
        return token

    def deploy_order_lib(self) -> MemoryOrderLib:
        lib = MemoryOrderLib(self.new_address())
        self._order_libs[_key(lib.address)] = lib
        return lib

    def deploy_contract_registry(self) -> MemoryContractRegistry:
        registry = MemoryContractRegistry(self.new_address())
        self._registries[_key(registry.address)] = registry
        return registry

    def deploy_market_contract(
        self,
        *,
        name: str,
        collateral_token: MemoryToken,
        price_floor: int,
        price_cap: int,
        qty_multiplier: int,
        expiration_timestamp: int,
        price_decimal_places: int = 0,
        creator: str = NULL_ADDRESS,
        oracle_data_source: str = "URL",
        oracle_query: str = "",
        white_list: bool = True,
    ) -> MemoryMarketContract:
        pool = MemoryCollateralPool(self, self.new_address())
        contract = MemoryMarketContract(
            self,
            self.new_address(),
            name=name,
            creator=creator,
            pool=pool,
            collateral_token_address=collateral_token.address,
            price_floor=price_floor,
            price_cap=price_cap,
            qty_multiplier=qty_multiplier,
            expiration_timestamp=expiration_timestamp,
            price_decimal_places=price_decimal_places,
            oracle_data_source=oracle_data_source,
            oracle_query=oracle_query,
        )
        pool.contract = contract
        self._contracts[_key(contract.address)] = contract
        self._pools[_key(pool.address)] = pool
        if white_list:
            self.contract_registry_contract.add(contract.address)
        return contract

    def token_for(self, address: str) -> MemoryToken:
        return self._tokens[_key(address)]

    # ILedger ------------------------------------------------------------
    def market_contract(self, address: str) -> MemoryMarketContract:
        return self._contracts[_key(address)]

    def collateral_pool(self, address: str) -> MemoryCollateralPool:
        return self._pools[_key(address)]

    def erc20(self, address: str) -> MemoryToken:
        return self._tokens[_key(address)]

    def order_lib(self, address: str) -> MemoryOrderLib:
        return self._order_libs[_key(address)]

    def contract_registry(self, address: str) -> MemoryContractRegistry:
        return self._registries[_key(address)]

    def market_token(self, address: str) -> MemoryMarketToken:
        token = self._tokens[_key(address)]
        if not isinstance(token, MemoryMarketToken):
            raise KeyError(address)
        return token

    async def get_transaction(self, tx_hash: str) -> TransactionInfo:
        return self._transactions[tx_hash.lower()]

    async def block_number(self) -> int:
        return self._block

    # Mining -------------------------------------------------------------
    @property
    def pending_transactions(self) -> int:
        return len(self._pending)

    def submit(
        self,
        sender: str,
        to: str,
        method: str,
        args: Tuple[Any, ...],
        effect: Callable[[_PendingTx], None],
    ) -> str:
        tx_hash = to_hex(keccak(b"xmarket-memory-tx:" + str(next(self._tx_seq)).encode()))
        tx = _PendingTx(
            info=TransactionInfo(
                tx_hash=tx_hash,
                block_number=None,
                from_address=sender,
                to_address=to,
                method=method,
                args=tuple(args),
            )
        )
        effect(tx)
        self._transactions[tx_hash.lower()] = tx.info
        self._pending.append(tx)
        self.log.debug("transaction_submitted", extra={"tx_hash": tx_hash, "method": method})
        if self.auto_mine:
            self.mine()
        return tx_hash

    def mine(self) -> int:
        """Seal pending transactions into a new block and publish their logs."""
        if not self._pending:
            return self._block
        self._block += 1
        pending, self._pending = self._pending, []
        for tx in pending:
            info = TransactionInfo(
                tx_hash=tx.info.tx_hash,
                block_number=self._block,
                from_address=tx.info.from_address,
                to_address=tx.info.to_address,
                method=tx.info.method,
                args=tx.info.args,
            )
            self._transactions[info.tx_hash.lower()] = info
            for stream, log_args in tx.logs:
                stream.emit(
                    EventLog(
                        event=stream.name,
                        address=stream.address,
                        tx_hash=info.tx_hash,
                        block_number=self._block,
                        args=log_args,
                    )
                )
        return self._block


__all__ = [
    "InMemoryLedger",
    "MemoryEventStream",
    "MemorySubscription",
    "MemoryToken",
    "MemoryMarketToken",
    "MemoryOrderLib",
    "MemoryContractRegistry",
    "MemoryCollateralPool",
    "MemoryMarketContract",
    "TransactionReverted",
    "compute_order_hash",
]
