# Execution package exports
#
# Services (order_service, collateral_service, router, ...) depend on the
# ledger package and are imported from their own modules.

from .collateral import needed_collateral
from .errors import ErrorKind, MarketError, error_kind_from_code
from .expiration import ExpirationWatcher
from .models import (
    NULL_ADDRESS,
    ECSignature,
    Order,
    OutcomeKind,
    SignedOrder,
    TransactionOutcome,
)

__all__ = [
    # Models
    "NULL_ADDRESS",
    "ECSignature",
    "Order",
    "OutcomeKind",
    "SignedOrder",
    "TransactionOutcome",

    # Errors
    "ErrorKind",
    "MarketError",
    "error_kind_from_code",

    # Core algorithms
    "needed_collateral",
    "ExpirationWatcher",
]
