# Ledger package exports

from .interface import (
    NULL_ADDRESS,
    EventLog,
    ICollateralPool,
    IERC20Token,
    IEventStream,
    IEventSubscription,
    ILedger,
    IMarketContract,
    IMarketToken,
    IOrderLib,
    ISigner,
    TransactionInfo,
)
from .signer import LocalAccountSigner, recover_signer
from .memory import InMemoryLedger, TransactionReverted, compute_order_hash

__all__ = [
    # Interface
    "NULL_ADDRESS",
    "EventLog",
    "TransactionInfo",
    "ICollateralPool",
    "IERC20Token",
    "IEventStream",
    "IEventSubscription",
    "ILedger",
    "IMarketContract",
    "IMarketToken",
    "IOrderLib",
    "ISigner",

    # Signing
    "LocalAccountSigner",
    "recover_signer",

    # In-memory implementation
    "InMemoryLedger",
    "TransactionReverted",
    "compute_order_hash",
]
