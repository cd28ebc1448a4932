from __future__ import annotations

import logging
from typing import List, Optional

from xmarket.app.config import ClientConfig
from xmarket.core.clock import IClock, WallClock
from xmarket.execution.bindings import ContractBindingCache
from xmarket.execution.collateral_service import CollateralService
from xmarket.execution.contract_service import ContractService
from xmarket.execution.expiration import ExpirationWatcher
from xmarket.execution.models import OracleContractMetaData, Order, SignedOrder, UserPosition
from xmarket.execution.order_service import OrderService
from xmarket.execution.position_service import PositionService
from xmarket.execution.resolver import OrderTransactionInfo
from xmarket.ledger.interface import ILedger, ISigner
from xmarket.utils.logging import setup_logging


class Market:
    """Single entry point wiring the order, collateral and contract services to one ledger."""

    def __init__(
        self,
        ledger: ILedger,
        config: ClientConfig,
        *,
        signer: Optional[ISigner] = None,
        clock: Optional[IClock] = None,
    ) -> None:
        self._config = config
        self._clock = clock or WallClock()
        self._bindings = ContractBindingCache(ledger=ledger)
        self._order_lib = ledger.order_lib(config.order_lib_address)
        self._market_token = ledger.market_token(config.market_token_address)
        self._orders = OrderService(
            ledger=ledger,
            bindings=self._bindings,
            order_lib=self._order_lib,
            market_token=self._market_token,
            signer=signer,
            clock=self._clock,
        )
        self._collateral = CollateralService(ledger=ledger, bindings=self._bindings, market_token=self._market_token)
        registry = None if config.registry_address is None else ledger.contract_registry(config.registry_address)
        self._contracts = ContractService(bindings=self._bindings, registry=registry)
        self._positions = PositionService(bindings=self._bindings)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def bindings(self) -> ContractBindingCache:
        return self._bindings

    @property
    def orders(self) -> OrderService:
        return self._orders

    @property
    def collateral(self) -> CollateralService:
        return self._collateral

    @property
    def contracts(self) -> ContractService:
        return self._contracts

    @property
    def positions(self) -> PositionService:
        return self._positions

    def create_expiration_watcher(self) -> ExpirationWatcher:
        return ExpirationWatcher(clock=self._clock)

    async def create_signed_order(self, **kwargs) -> SignedOrder:
        return await self._orders.create_signed_order(**kwargs)

    async def create_order_hash(self, order: Order) -> str:
        return await self._orders.create_order_hash(order)

    async def trade_order(self, signed_order: SignedOrder, fill_qty: int, sender: str) -> OrderTransactionInfo:
        return await self._orders.trade_order(signed_order, fill_qty, sender)

    async def cancel_order(self, order: Order, cancel_qty: int, sender: str) -> OrderTransactionInfo:
        return await self._orders.cancel_order(order, cancel_qty, sender)

    async def deposit_collateral(self, contract_address: str, amount: int, sender: str) -> str:
        return await self._collateral.deposit_collateral(contract_address, amount, sender)

    async def withdraw_collateral(self, contract_address: str, amount: int, sender: str) -> str:
        return await self._collateral.withdraw_collateral(contract_address, amount, sender)

    async def settle_and_close(self, contract_address: str, sender: str) -> str:
        return await self._collateral.settle_and_close(contract_address, sender)

    async def get_contract_meta_data(self, contract_address: str) -> OracleContractMetaData:
        return await self._contracts.get_contract_meta_data(contract_address)

    async def get_address_white_list(self) -> List[str]:
        return await self._contracts.get_address_white_list()

    async def get_user_positions(self, contract_address: str, user: str, **kwargs) -> List[UserPosition]:
        return await self._positions.get_user_positions(contract_address, user, **kwargs)


def create_market(
    ledger: ILedger,
    config: ClientConfig,
    *,
    signer: Optional[ISigner] = None,
    clock: Optional[IClock] = None,
    configure_logging: bool = True,
) -> Market:
    if configure_logging:
        setup_logging(config.log_level, config.log_dir)
    market = Market(ledger, config, signer=signer, clock=clock)
    logging.getLogger("xmarket.execution.router").info(
        "market_ready",
        extra={"network_id": config.network_id, "order_lib": config.order_lib_address},
    )
    return market


__all__ = ["Market", "create_market"]
