from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional

from xmarket.execution.errors import ErrorKind

NULL_ADDRESS = "0x" + "0" * 40


@dataclass(frozen=True, slots=True)
class Order:
    """Maker intent to trade ``order_qty`` (positive buys, negative sells) at ``price``.

    ``remaining_qty`` is a snapshot taken when the order was built or last
    refreshed; it is not part of the hash identity.
    """

    contract_address: str
    maker: str
    taker: str
    fee_recipient: str
    maker_fee: int
    taker_fee: int
    order_qty: int
    price: int
    salt: int
    expiration_timestamp: int
    remaining_qty: int

    @property
    def order_addresses(self) -> List[str]:
        return [self.maker, self.taker, self.fee_recipient]

    @property
    def unsigned_order_values(self) -> List[int]:
        return [self.maker_fee, self.taker_fee, self.price, self.expiration_timestamp, self.salt]

    @property
    def is_buy(self) -> bool:
        return self.order_qty > 0

    @property
    def accepts_any_taker(self) -> bool:
        return self.taker.lower() == NULL_ADDRESS

    def with_remaining_qty(self, remaining_qty: int) -> "Order":
        return replace(self, remaining_qty=remaining_qty)


@dataclass(frozen=True, slots=True)
class ECSignature:
    v: int
    r: str
    s: str


@dataclass(frozen=True, slots=True)
class SignedOrder(Order):
    ec_signature: ECSignature

    @classmethod
    def from_order(cls, order: Order, ec_signature: ECSignature) -> "SignedOrder":
        return cls(
            contract_address=order.contract_address,
            maker=order.maker,
            taker=order.taker,
            fee_recipient=order.fee_recipient,
            maker_fee=order.maker_fee,
            taker_fee=order.taker_fee,
            order_qty=order.order_qty,
            price=order.price,
            salt=order.salt,
            expiration_timestamp=order.expiration_timestamp,
            remaining_qty=order.remaining_qty,
            ec_signature=ec_signature,
        )


class OutcomeKind(str, Enum):
    FILLED = "filled"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TransactionOutcome:
    kind: OutcomeKind
    tx_hash: str
    qty: Optional[int] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def filled(cls, tx_hash: str, qty: int) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.FILLED, tx_hash=tx_hash, qty=qty)

    @classmethod
    def cancelled(cls, tx_hash: str, qty: int) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.CANCELLED, tx_hash=tx_hash, qty=qty)

    @classmethod
    def failed(cls, tx_hash: str, error: ErrorKind) -> "TransactionOutcome":
        return cls(kind=OutcomeKind.FAILED, tx_hash=tx_hash, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED


@dataclass(frozen=True, slots=True)
class ContractMetaData:
    contract_name: str
    contract_address: str
    creator: str
    collateral_pool_address: str
    collateral_token_address: str
    collateral_pool_balance: int
    expiration_timestamp: int
    is_settled: bool
    settlement_price: int
    last_price: int
    price_cap: int
    price_floor: int
    price_decimal_places: int
    qty_multiplier: int


@dataclass(frozen=True, slots=True)
class OracleContractMetaData(ContractMetaData):
    """Metadata of a contract settled by an oracle query."""

    last_price_query_result: str
    oracle_data_source: str
    oracle_query: str


@dataclass(frozen=True, slots=True)
class OrderFilledEvent:
    maker: str
    taker: str
    fee_recipient: str
    filled_qty: int
    paid_maker_fee: int
    paid_taker_fee: int
    price: int
    order_hash: str
    tx_hash: str
    block_number: int


class CollateralEventType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True, slots=True)
class CollateralEvent:
    type: CollateralEventType
    from_address: str
    to_address: str
    amount: int
    block_number: int
    tx_hash: str


@dataclass(frozen=True, slots=True)
class ParsedContractName:
    reference_asset: str
    collateral_token: str
    data_provider: str
    expiration_timestamp: int
    user_text: str


@dataclass(frozen=True, slots=True)
class UserPosition:
    price: int
    qty: int


__all__ = [
    "NULL_ADDRESS",
    "Order",
    "ECSignature",
    "SignedOrder",
    "OutcomeKind",
    "TransactionOutcome",
    "ContractMetaData",
    "OracleContractMetaData",
    "OrderFilledEvent",
    "CollateralEventType",
    "CollateralEvent",
    "ParsedContractName",
    "UserPosition",
]
