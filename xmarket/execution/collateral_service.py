from __future__ import annotations

import logging
from typing import List, Optional

from xmarket.execution.bindings import ContractBindingCache
from xmarket.execution.errors import ErrorKind, MarketError
from xmarket.execution.models import CollateralEvent, CollateralEventType
from xmarket.ledger.interface import ILedger, IMarketToken
from xmarket.utils.validation import assert_address, assert_base_unit_amount, same_address

DEPOSIT_METHOD = "depositTokensForTrading"


class CollateralService:
    """Collateral pool deposits, withdrawals and ERC20 helpers."""

    def __init__(
        self,
        *,
        ledger: ILedger,
        bindings: ContractBindingCache,
        market_token: IMarketToken,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._ledger = ledger
        self._bindings = bindings
        self._market_token = market_token
        self._log = logger or logging.getLogger("xmarket.execution.collateral_service")

    async def get_user_account_balance(self, contract_address: str, user: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.collateral_pool.get_user_account_balance(user)

    async def deposit_collateral(self, contract_address: str, amount: int, sender: str) -> str:
        assert_address("sender", sender)
        assert_base_unit_amount("amount", amount)
        binding = await self._bindings.binding_for(contract_address)
        if not await self._market_token.is_user_enabled_for_contract(contract_address, sender):
            self._reject(ErrorKind.USER_NOT_ENABLED_FOR_CONTRACT, contract_address, sender)
        token = binding.collateral_token
        if await token.balance_of(sender) < amount:
            self._reject(ErrorKind.INSUFFICIENT_BALANCE_FOR_TRANSFER, contract_address, sender)
        if await token.allowance(sender, binding.collateral_pool.address) < amount:
            self._reject(ErrorKind.INSUFFICIENT_ALLOWANCE_FOR_TRANSFER, contract_address, sender)
        tx_hash = await binding.collateral_pool.deposit_tokens_for_trading(amount, sender=sender)
        self._log.info("collateral_deposited", extra={"contract": contract_address, "amount": amount, "tx_hash": tx_hash})
        return tx_hash

    async def withdraw_collateral(self, contract_address: str, amount: int, sender: str) -> str:
        assert_address("sender", sender)
        assert_base_unit_amount("amount", amount)
        binding = await self._bindings.binding_for(contract_address)
        if await binding.collateral_pool.get_user_account_balance(sender) < amount:
            self._reject(ErrorKind.INSUFFICIENT_BALANCE_FOR_TRANSFER, contract_address, sender)
        tx_hash = await binding.collateral_pool.withdraw_tokens(amount, sender=sender)
        self._log.info("collateral_withdrawn", extra={"contract": contract_address, "amount": amount, "tx_hash": tx_hash})
        return tx_hash

    async def settle_and_close(self, contract_address: str, sender: str) -> str:
        assert_address("sender", sender)
        binding = await self._bindings.binding_for(contract_address)
        return await binding.collateral_pool.settle_and_close(sender=sender)

    async def get_collateral_events(
        self,
        contract_address: str,
        *,
        from_block: int = 0,
        to_block: Optional[int] = None,
        user: Optional[str] = None,
    ) -> List[CollateralEvent]:
        """Deposit and withdrawal history of a pool, classified by the method each tx invoked."""
        binding = await self._bindings.binding_for(contract_address)
        logs = await binding.collateral_pool.balance_updated_events().get_logs(from_block=from_block, to_block=to_block)
        events: List[CollateralEvent] = []
        for entry in logs:
            tx = await self._ledger.get_transaction(entry.tx_hash)
            is_deposit = tx.method == DEPOSIT_METHOD
            event = CollateralEvent(
                type=CollateralEventType.DEPOSIT if is_deposit else CollateralEventType.WITHDRAWAL,
                from_address=tx.from_address if is_deposit else tx.to_address,
                to_address=tx.to_address if is_deposit else tx.from_address,
                amount=int(tx.args[0]) if tx.args else 0,
                block_number=tx.block_number if tx.block_number is not None else entry.block_number,
                tx_hash=tx.tx_hash,
            )
            if user is None or same_address(user, tx.from_address) or same_address(user, tx.to_address):
                events.append(event)
        return events

    # ------------------------------------------------------------------
    # ERC20
    async def get_balance(self, token_address: str, owner: str) -> int:
        assert_address("token_address", token_address)
        assert_address("owner", owner)
        return await self._bindings.token(token_address).balance_of(owner)

    async def get_allowance(self, token_address: str, owner: str, spender: str) -> int:
        assert_address("token_address", token_address)
        assert_address("owner", owner)
        assert_address("spender", spender)
        return await self._bindings.token(token_address).allowance(owner, spender)

    async def set_allowance(self, token_address: str, spender: str, amount: int, sender: str) -> str:
        assert_address("token_address", token_address)
        assert_address("spender", spender)
        assert_address("sender", sender)
        assert_base_unit_amount("amount", amount)
        return await self._bindings.token(token_address).approve(spender, amount, sender=sender)

    async def transfer(self, token_address: str, to: str, amount: int, sender: str) -> str:
        assert_address("token_address", token_address)
        assert_address("to", to)
        assert_address("sender", sender)
        assert_base_unit_amount("amount", amount)
        return await self._bindings.token(token_address).transfer(to, amount, sender=sender)

    def _reject(self, kind: ErrorKind, contract_address: str, sender: str) -> None:
        self._log.warning("collateral_rejected", extra={"reason": kind.value, "contract": contract_address, "sender": sender})
        raise MarketError(kind)


__all__ = ["CollateralService", "DEPOSIT_METHOD"]
