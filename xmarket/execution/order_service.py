from __future__ import annotations

import logging
from typing import List, Optional

from xmarket.core.clock import IClock, WallClock
from xmarket.execution.bindings import ContractBindingCache
from xmarket.execution.collateral import needed_collateral
from xmarket.execution.errors import ErrorKind, MarketError
from xmarket.execution.models import ECSignature, Order, OrderFilledEvent, SignedOrder
from xmarket.execution.resolver import OrderTransactionInfo
from xmarket.ledger.interface import ILedger, IMarketToken, IOrderLib, ISigner
from xmarket.utils.idgen import generate_pseudo_random_salt
from xmarket.utils.signature import parse_ec_signature
from xmarket.utils.validation import assert_address, same_address

FILL_SIDES = ("maker", "taker", "any")


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class OrderService:
    """Hashes, signs, validates and submits orders for market contracts.

    ``trade_order`` runs every check the contract would enforce before any
    transaction is sent, so a doomed trade fails locally without spending gas.
    """

    def __init__(
        self,
        *,
        ledger: ILedger,
        bindings: ContractBindingCache,
        order_lib: IOrderLib,
        market_token: IMarketToken,
        signer: Optional[ISigner] = None,
        clock: Optional[IClock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._ledger = ledger
        self._bindings = bindings
        self._order_lib = order_lib
        self._market_token = market_token
        self._signer = signer
        self._clock = clock or WallClock()
        self._log = logger or logging.getLogger("xmarket.execution.order_service")

    # ------------------------------------------------------------------
    # Hashing and signing
    async def create_order_hash(self, order: Order) -> str:
        return await self._order_lib.create_order_hash(
            order.contract_address,
            order.order_addresses,
            order.unsigned_order_values,
            order.order_qty,
        )

    async def is_valid_signature(self, signed_order: SignedOrder, order_hash: Optional[str] = None) -> bool:
        if order_hash is None:
            order_hash = await self.create_order_hash(signed_order)
        sig = signed_order.ec_signature
        return await self._order_lib.is_valid_signature(signed_order.maker, order_hash, sig.v, sig.r, sig.s)

    async def sign_order_hash(self, order_hash: str, signer_address: str) -> ECSignature:
        if self._signer is None:
            raise RuntimeError("order service was created without a signer")
        raw = await self._signer.sign_message(signer_address, order_hash)
        return parse_ec_signature(raw)

    async def create_signed_order(
        self,
        *,
        contract_address: str,
        expiration_timestamp: int,
        fee_recipient: str,
        maker: str,
        maker_fee: int,
        taker: str,
        taker_fee: int,
        order_qty: int,
        price: int,
        remaining_qty: Optional[int] = None,
        salt: Optional[int] = None,
    ) -> SignedOrder:
        assert_address("contract_address", contract_address)
        assert_address("maker", maker)
        assert_address("taker", taker)
        assert_address("fee_recipient", fee_recipient)
        order = Order(
            contract_address=contract_address,
            maker=maker,
            taker=taker,
            fee_recipient=fee_recipient,
            maker_fee=maker_fee,
            taker_fee=taker_fee,
            order_qty=order_qty,
            price=price,
            salt=generate_pseudo_random_salt() if salt is None else salt,
            expiration_timestamp=expiration_timestamp,
            remaining_qty=order_qty if remaining_qty is None else remaining_qty,
        )
        order_hash = await self.create_order_hash(order)
        signature = await self.sign_order_hash(order_hash, maker)
        return SignedOrder.from_order(order, signature)

    # ------------------------------------------------------------------
    # Trading
    async def validate_trade(self, signed_order: SignedOrder, fill_qty: int, sender: str) -> None:
        """Raise ``MarketError`` for the first pre-trade check that fails."""
        binding = await self._bindings.binding_for(signed_order.contract_address)
        contract = binding.market_contract

        if await contract.is_settled():
            self._reject(ErrorKind.CONTRACT_ALREADY_SETTLED, signed_order)

        if not signed_order.accepts_any_taker and not same_address(signed_order.taker, sender):
            self._reject(ErrorKind.INVALID_TAKER, signed_order)

        if self._clock.now() >= signed_order.expiration_timestamp:
            self._reject(ErrorKind.ORDER_EXPIRED, signed_order)

        if signed_order.remaining_qty == 0:
            self._reject(ErrorKind.ORDER_FILLED_OR_CANCELLED, signed_order)

        if _sign(signed_order.order_qty) != _sign(fill_qty):
            self._reject(ErrorKind.BUY_SELL_MISMATCH, signed_order)

        order_hash = await self.create_order_hash(signed_order)
        if not await self.is_valid_signature(signed_order, order_hash):
            self._reject(ErrorKind.INVALID_SIGNATURE, signed_order)

        maker = signed_order.maker
        token = self._market_token
        for user in (maker, sender):
            if not await token.is_user_enabled_for_contract(signed_order.contract_address, user):
                self._reject(ErrorKind.USER_NOT_ENABLED_FOR_CONTRACT, signed_order)

        for user, fee in ((maker, signed_order.maker_fee), (sender, signed_order.taker_fee)):
            if await token.balance_of(user) < fee:
                self._reject(ErrorKind.INSUFFICIENT_BALANCE_FOR_TRANSFER, signed_order)
            if await token.allowance(user, signed_order.fee_recipient) < fee:
                self._reject(ErrorKind.INSUFFICIENT_ALLOWANCE_FOR_TRANSFER, signed_order)

        pool = binding.collateral_pool
        maker_balance = await pool.get_user_account_balance(maker)
        taker_balance = await pool.get_user_account_balance(sender)
        maker_needed = await self.calculate_needed_collateral(signed_order.contract_address, fill_qty, signed_order.price)
        taker_needed = await self.calculate_needed_collateral(signed_order.contract_address, -fill_qty, signed_order.price)
        if maker_balance < maker_needed or taker_balance < taker_needed:
            self._reject(ErrorKind.INSUFFICIENT_COLLATERAL_BALANCE, signed_order)

    async def trade_order(self, signed_order: SignedOrder, fill_qty: int, sender: str) -> OrderTransactionInfo:
        assert_address("sender", sender)
        await self.validate_trade(signed_order, fill_qty, sender)
        binding = await self._bindings.binding_for(signed_order.contract_address)
        sig = signed_order.ec_signature
        tx_hash = await binding.market_contract.trade_order(
            signed_order.order_addresses,
            signed_order.unsigned_order_values,
            signed_order.order_qty,
            fill_qty,
            sig.v,
            sig.r,
            sig.s,
            sender=sender,
        )
        tx = await self._ledger.get_transaction(tx_hash)
        self._log.info(
            "trade_submitted",
            extra={
                "contract": signed_order.contract_address,
                "maker": signed_order.maker,
                "taker": sender,
                "fill_qty": fill_qty,
                "price": signed_order.price,
                "tx_hash": tx_hash,
                "block_number": tx.block_number,
            },
        )
        return OrderTransactionInfo(
            market_contract=binding.market_contract,
            order=signed_order,
            tx_hash=tx_hash,
            block_number=tx.block_number,
        )

    async def cancel_order(self, order: Order, cancel_qty: int, sender: str) -> OrderTransactionInfo:
        assert_address("sender", sender)
        binding = await self._bindings.binding_for(order.contract_address)
        tx_hash = await binding.market_contract.cancel_order(
            order.order_addresses,
            order.unsigned_order_values,
            order.order_qty,
            cancel_qty,
            sender=sender,
        )
        tx = await self._ledger.get_transaction(tx_hash)
        self._log.info(
            "cancel_submitted",
            extra={"contract": order.contract_address, "cancel_qty": cancel_qty, "tx_hash": tx_hash},
        )
        return OrderTransactionInfo(
            market_contract=binding.market_contract,
            order=order,
            tx_hash=tx_hash,
            block_number=tx.block_number,
        )

    def _reject(self, kind: ErrorKind, order: Order) -> None:
        self._log.warning(
            "trade_rejected",
            extra={"reason": kind.value, "contract": order.contract_address, "maker": order.maker},
        )
        raise MarketError(kind)

    # ------------------------------------------------------------------
    # Reads
    async def get_qty_filled_or_cancelled(self, contract_address: str, order_hash: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.get_qty_filled_or_cancelled_from_order(order_hash)

    async def refresh_order(self, order: Order) -> Order:
        """Return a copy of ``order`` whose ``remaining_qty`` reflects the ledger."""
        order_hash = await self.create_order_hash(order)
        consumed = await self.get_qty_filled_or_cancelled(order.contract_address, order_hash)
        return order.with_remaining_qty(order.order_qty - consumed)

    async def calculate_needed_collateral(self, contract_address: str, qty: int, price: int) -> int:
        binding = await self._bindings.binding_for(contract_address)
        contract = binding.market_contract
        return needed_collateral(
            await contract.price_floor(),
            await contract.price_cap(),
            await contract.qty_multiplier(),
            qty,
            price,
        )

    async def get_contract_fills(
        self,
        contract_address: str,
        *,
        from_block: int = 0,
        to_block: Optional[int] = None,
        user: Optional[str] = None,
        side: str = "any",
    ) -> List[OrderFilledEvent]:
        if side not in FILL_SIDES:
            raise ValueError(f"side must be one of {FILL_SIDES}, got {side!r}")
        binding = await self._bindings.binding_for(contract_address)
        logs = await binding.market_contract.filled_events().get_logs(from_block=from_block, to_block=to_block)
        fills: List[OrderFilledEvent] = []
        for entry in logs:
            args = entry.args
            fill = OrderFilledEvent(
                maker=args["maker"],
                taker=args["taker"],
                fee_recipient=args["feeRecipient"],
                filled_qty=int(args["filledQty"]),
                paid_maker_fee=int(args["paidMakerFee"]),
                paid_taker_fee=int(args["paidTakerFee"]),
                price=int(args["price"]),
                order_hash=args["orderHash"],
                tx_hash=entry.tx_hash,
                block_number=entry.block_number,
            )
            if user is not None:
                is_maker = same_address(fill.maker, user)
                is_taker = same_address(fill.taker, user)
                if side == "maker" and not is_maker:
                    continue
                if side == "taker" and not is_taker:
                    continue
                if side == "any" and not (is_maker or is_taker):
                    continue
            fills.append(fill)
        return fills


__all__ = ["OrderService", "FILL_SIDES"]
