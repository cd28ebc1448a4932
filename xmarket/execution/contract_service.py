from __future__ import annotations

from typing import List, Optional

from xmarket.execution.bindings import ContractBindingCache
from xmarket.execution.models import OracleContractMetaData
from xmarket.ledger.interface import IMarketContractRegistry


class ContractService:
    """Read-only views of a market contract, its pool and the contract registry."""

    def __init__(self, *, bindings: ContractBindingCache, registry: Optional[IMarketContractRegistry] = None) -> None:
        self._bindings = bindings
        self._registry = registry

    async def get_address_white_list(self) -> List[str]:
        if self._registry is None:
            raise RuntimeError("no contract registry configured")
        return await self._registry.get_address_white_list()

    async def get_contract_meta_data(self, contract_address: str) -> OracleContractMetaData:
        binding = await self._bindings.binding_for(contract_address)
        contract = binding.market_contract
        pool = binding.collateral_pool
        return OracleContractMetaData(
            contract_name=await contract.contract_name(),
            contract_address=contract.address,
            creator=await contract.creator(),
            collateral_pool_address=pool.address,
            collateral_token_address=binding.collateral_token.address,
            collateral_pool_balance=await pool.collateral_pool_balance(),
            expiration_timestamp=await contract.expiration_timestamp(),
            is_settled=await contract.is_settled(),
            settlement_price=await contract.settlement_price(),
            last_price=await contract.last_price(),
            price_cap=await contract.price_cap(),
            price_floor=await contract.price_floor(),
            price_decimal_places=await contract.price_decimal_places(),
            qty_multiplier=await contract.qty_multiplier(),
            last_price_query_result=await contract.last_price_query_result(),
            oracle_data_source=await contract.oracle_data_source(),
            oracle_query=await contract.oracle_query(),
        )

    async def get_contract_name(self, contract_address: str) -> str:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.contract_name()

    async def get_oracle_query(self, contract_address: str) -> str:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.oracle_query()

    async def get_price_decimal_places(self, contract_address: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.price_decimal_places()

    async def get_collateral_pool_address(self, contract_address: str) -> str:
        binding = await self._bindings.binding_for(contract_address)
        return binding.collateral_pool.address

    async def is_contract_settled(self, contract_address: str) -> bool:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.is_settled()

    async def get_contract_expiration(self, contract_address: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.market_contract.expiration_timestamp()


__all__ = ["ContractService"]
