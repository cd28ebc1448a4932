from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from xmarket.ledger.interface import ICollateralPool, IERC20Token, ILedger, IMarketContract


@dataclass(frozen=True, slots=True)
class ContractBinding:
    market_contract: IMarketContract
    collateral_pool: ICollateralPool
    collateral_token: IERC20Token


def _normalize(address: str) -> str:
    return address.lower()


class ContractBindingCache:
    """Memoizes the (contract, pool, token) triple per market contract address.

    The cache is append-only: once built, a binding is never rebuilt. It is
    reachable both by the contract address and by its collateral pool address.
    """

    def __init__(self, *, ledger: ILedger, logger: Optional[logging.Logger] = None) -> None:
        self._ledger = ledger
        self._log = logger or logging.getLogger("xmarket.execution.bindings")
        self._by_contract: Dict[str, ContractBinding] = {}
        self._by_pool: Dict[str, ContractBinding] = {}
        self._tokens: Dict[str, IERC20Token] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._by_contract)

    def cached(self, address: str) -> Optional[ContractBinding]:
        return self._by_contract.get(_normalize(address))

    async def binding_for(self, address: str) -> ContractBinding:
        key = _normalize(address)
        binding = self._by_contract.get(key)
        if binding is not None:
            return binding
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            binding = self._by_contract.get(key)
            if binding is not None:
                return binding
            binding = await self._build(address)
            self._by_contract[key] = binding
            self._by_pool[_normalize(binding.collateral_pool.address)] = binding
        self._locks.pop(key, None)
        self._log.debug(
            "binding_created",
            extra={"contract": address, "pool": binding.collateral_pool.address},
        )
        return binding

    def binding_for_pool(self, pool_address: str) -> Optional[ContractBinding]:
        return self._by_pool.get(_normalize(pool_address))

    def token(self, address: str) -> IERC20Token:
        key = _normalize(address)
        token = self._tokens.get(key)
        if token is None:
            token = self._ledger.erc20(address)
            self._tokens[key] = token
        return token

    async def _build(self, address: str) -> ContractBinding:
        market_contract = self._ledger.market_contract(address)
        pool_address = await market_contract.collateral_pool_address()
        token_address = await market_contract.collateral_token_address()
        return ContractBinding(
            market_contract=market_contract,
            collateral_pool=self._ledger.collateral_pool(pool_address),
            collateral_token=self.token(token_address),
        )


__all__ = ["ContractBinding", "ContractBindingCache"]
