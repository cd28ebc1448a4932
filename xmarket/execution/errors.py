from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class ErrorKind(str, Enum):
    ORDER_EXPIRED = "order_expired"
    ORDER_DEAD = "order_dead"
    UNKNOWN_ORDER_ERROR = "unknown_order_error"
    CONTRACT_ALREADY_SETTLED = "contract_already_settled"
    INVALID_TAKER = "invalid_taker"
    ORDER_FILLED_OR_CANCELLED = "order_filled_or_cancelled"
    BUY_SELL_MISMATCH = "buy_sell_mismatch"
    INVALID_SIGNATURE = "invalid_signature"
    USER_NOT_ENABLED_FOR_CONTRACT = "user_not_enabled_for_contract"
    INSUFFICIENT_BALANCE_FOR_TRANSFER = "insufficient_balance_for_transfer"
    INSUFFICIENT_ALLOWANCE_FOR_TRANSFER = "insufficient_allowance_for_transfer"
    INSUFFICIENT_COLLATERAL_BALANCE = "insufficient_collateral_balance"
    USER_HAS_NO_ASSOCIATED_POSITIONS = "user_has_no_associated_positions"


class MarketError(Exception):
    """Raised for every order/collateral failure the ledger client can classify."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(kind.value if detail is None else f"{kind.value}: {detail}")


ORDER_EXPIRED_CODE = 0
ORDER_DEAD_CODE = 1


def error_kind_from_code(code: Union[int, str]) -> ErrorKind:
    """Map a ledger error-event code onto the client error taxonomy."""
    try:
        value = int(str(code).strip())
    except ValueError:
        return ErrorKind.UNKNOWN_ORDER_ERROR
    if value == ORDER_EXPIRED_CODE:
        return ErrorKind.ORDER_EXPIRED
    if value == ORDER_DEAD_CODE:
        return ErrorKind.ORDER_DEAD
    return ErrorKind.UNKNOWN_ORDER_ERROR


__all__ = [
    "ErrorKind",
    "MarketError",
    "ORDER_EXPIRED_CODE",
    "ORDER_DEAD_CODE",
    "error_kind_from_code",
]
