from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from xmarket.execution.models import NULL_ADDRESS


@dataclass(frozen=True, slots=True)
class EventLog:
    """One decoded contract event as delivered by a log query or subscription."""

    event: str
    address: str
    tx_hash: str
    block_number: int
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TransactionInfo:
    tx_hash: str
    block_number: Optional[int]
    from_address: str
    to_address: str
    method: str = ""
    args: Tuple[Any, ...] = ()


LogHandler = Callable[[EventLog], None]
ErrorHandler = Callable[[BaseException], None]


class IEventSubscription(Protocol):
    async def unsubscribe(self) -> None:
        """Stop delivery and release the underlying listener."""


class IEventStream(Protocol):
    """One event type of one contract, queryable and subscribable."""

    async def get_logs(
        self,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        from_block: int = 0,
        to_block: Optional[int] = None,
    ) -> List[EventLog]:
        """Return historical logs in ``[from_block, to_block]``; ``None`` means latest."""

    async def subscribe(
        self,
        handler: LogHandler,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        from_block: int = 0,
        on_error: Optional[ErrorHandler] = None,
    ) -> IEventSubscription:
        """Deliver every new matching log to ``handler`` until unsubscribed."""


class IERC20Token(Protocol):
    address: str

    async def balance_of(self, owner: str) -> int:
        """Return the token balance of ``owner`` in base units."""

    async def allowance(self, owner: str, spender: str) -> int:
        """Return what ``spender`` may still transfer on behalf of ``owner``."""

    async def approve(self, spender: str, amount: int, *, sender: str) -> str:
        """Set the allowance of ``spender`` and return the transaction hash."""

    async def transfer(self, to: str, amount: int, *, sender: str) -> str:
        """Transfer ``amount`` to ``to`` and return the transaction hash."""


class IMarketToken(IERC20Token, Protocol):
    async def is_user_enabled_for_contract(self, contract_address: str, user: str) -> bool:
        """Return True when ``user`` holds enough market token to trade the contract."""


class IMarketContract(Protocol):
    address: str

    async def contract_name(self) -> str: ...

    async def creator(self) -> str: ...

    async def price_floor(self) -> int: ...

    async def price_cap(self) -> int: ...

    async def price_decimal_places(self) -> int: ...

    async def qty_multiplier(self) -> int: ...

    async def expiration_timestamp(self) -> int:
        """Contract expiration in unix seconds."""

    async def is_settled(self) -> bool: ...

    async def settlement_price(self) -> int: ...

    async def last_price(self) -> int: ...

    async def collateral_pool_address(self) -> str: ...

    async def collateral_token_address(self) -> str: ...

    async def oracle_query(self) -> str:
        """Query the oracle runs to fetch the settlement price."""

    async def oracle_data_source(self) -> str: ...

    async def last_price_query_result(self) -> str:
        """Raw result of the latest oracle query, before scaling."""

    async def get_qty_filled_or_cancelled_from_order(self, order_hash: str) -> int:
        """Signed quantity already consumed by trades and cancels for ``order_hash``."""

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
        """Submit a fill and return the transaction hash."""

    async def cancel_order(
        self,
        order_addresses: Sequence[str],
        unsigned_order_values: Sequence[int],
        order_qty: int,
        cancel_qty: int,
        *,
        sender: str,
    ) -> str:
        """Submit a cancel and return the transaction hash."""

    def filled_events(self) -> IEventStream:
        """``OrderFilled`` logs, args: maker, taker, feeRecipient, filledQty, paidMakerFee, paidTakerFee, price, orderHash."""

    def cancelled_events(self) -> IEventStream:
        """``OrderCancelled`` logs, args: maker, feeRecipient, cancelledQty, orderHash."""

    def error_events(self) -> IEventStream:
        """``Error`` logs, args: errorCode, orderHash."""


class ICollateralPool(Protocol):
    address: str

    async def collateral_pool_balance(self) -> int: ...

    async def get_user_account_balance(self, user: str) -> int:
        """Unallocated collateral ``user`` has deposited for this contract."""

    async def get_user_net_position(self, user: str) -> int: ...

    async def get_user_position_count(self, user: str) -> int: ...

    async def get_user_position(self, user: str, index: int) -> Tuple[int, int]:
        """Return ``(price, qty)`` of the position at ``index``."""

    async def deposit_tokens_for_trading(self, amount: int, *, sender: str) -> str: ...

    async def withdraw_tokens(self, amount: int, *, sender: str) -> str: ...

    async def settle_and_close(self, *, sender: str) -> str: ...

    def balance_updated_events(self) -> IEventStream:
        """``UpdatedUserBalance`` logs, args: user, balance."""


class IOrderLib(Protocol):
    address: str

    async def create_order_hash(
        self,
        contract_address: str,
        order_addresses: Sequence[str],
        unsigned_order_values: Sequence[int],
        order_qty: int,
    ) -> str:
        """Return the 32-byte order hash as 0x-prefixed hex."""

    async def is_valid_signature(self, signer: str, order_hash: str, v: int, r: str, s: str) -> bool: ...


class IMarketContractRegistry(Protocol):
    address: str

    async def get_address_white_list(self) -> List[str]:
        """Addresses of the market contracts the registry has approved."""


class ISigner(Protocol):
    async def sign_message(self, signer: str, message_hash: str) -> str:
        """Sign ``message_hash`` on behalf of ``signer`` and return the raw 65-byte hex signature."""


class ILedger(Protocol):
    """Factory for remote bindings plus the few chain-level reads the client needs."""

    def market_contract(self, address: str) -> IMarketContract: ...

    def collateral_pool(self, address: str) -> ICollateralPool: ...

    def erc20(self, address: str) -> IERC20Token: ...

    def order_lib(self, address: str) -> IOrderLib: ...

    def market_token(self, address: str) -> IMarketToken: ...

    def contract_registry(self, address: str) -> IMarketContractRegistry: ...

    async def get_transaction(self, tx_hash: str) -> TransactionInfo: ...

    async def block_number(self) -> int: ...


__all__ = [
    "NULL_ADDRESS",
    "EventLog",
    "TransactionInfo",
    "LogHandler",
    "ErrorHandler",
    "IEventSubscription",
    "IEventStream",
    "IERC20Token",
    "IMarketToken",
    "IMarketContract",
    "ICollateralPool",
    "IOrderLib",
    "IMarketContractRegistry",
    "ISigner",
    "ILedger",
]
