from __future__ import annotations

from typing import Dict, List

from xmarket.execution.bindings import ContractBindingCache
from xmarket.execution.errors import ErrorKind, MarketError
from xmarket.execution.models import UserPosition


def consolidate_positions(positions: List[UserPosition]) -> List[UserPosition]:
    """Sum quantities that share a price; result ordered by price."""
    totals: Dict[int, int] = {}
    for position in positions:
        totals[position.price] = totals.get(position.price, 0) + position.qty
    return [UserPosition(price=price, qty=qty) for price, qty in sorted(totals.items())]


class PositionService:
    def __init__(self, *, bindings: ContractBindingCache) -> None:
        self._bindings = bindings

    async def get_position_count(self, contract_address: str, user: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.collateral_pool.get_user_position_count(user)

    async def get_user_net_position(self, contract_address: str, user: str) -> int:
        binding = await self._bindings.binding_for(contract_address)
        return await binding.collateral_pool.get_user_net_position(user)

    async def get_user_position(self, contract_address: str, user: str, index: int) -> UserPosition:
        count = await self.get_position_count(contract_address, user)
        if count == 0:
            raise MarketError(ErrorKind.USER_HAS_NO_ASSOCIATED_POSITIONS)
        if not 0 <= index < count:
            raise IndexError(f"position index {index} out of range for {count} positions")
        binding = await self._bindings.binding_for(contract_address)
        price, qty = await binding.collateral_pool.get_user_position(user, index)
        return UserPosition(price=int(price), qty=int(qty))

    async def get_user_positions(
        self,
        contract_address: str,
        user: str,
        *,
        sort: bool = False,
        consolidate: bool = False,
    ) -> List[UserPosition]:
        """All open positions of ``user``.

        ``sort`` orders by price (stable for equal prices); ``consolidate``
        merges equal prices into one entry and implies price order.
        """
        count = await self.get_position_count(contract_address, user)
        if count == 0:
            raise MarketError(ErrorKind.USER_HAS_NO_ASSOCIATED_POSITIONS)
        binding = await self._bindings.binding_for(contract_address)
        positions: List[UserPosition] = []
        for index in range(count):
            price, qty = await binding.collateral_pool.get_user_position(user, index)
            positions.append(UserPosition(price=int(price), qty=int(qty)))
        if consolidate:
            return consolidate_positions(positions)
        if sort:
            return sorted(positions, key=lambda position: position.price)
        return positions


__all__ = ["PositionService", "consolidate_positions"]
