from __future__ import annotations


def needed_collateral(price_floor: int, price_cap: int, qty_multiplier: int, qty: int, price: int) -> int:
    """Collateral a position of signed ``qty`` at ``price`` must lock.

    A long position can lose down to the floor, a short one up to the cap.
    Integer arithmetic only so the result matches the pool contract exactly.
    Call once with ``qty`` and once with ``-qty`` to size both sides of a fill.
    """
    if qty_multiplier <= 0:
        raise ValueError("qty_multiplier must be positive")
    if price_floor > price_cap:
        raise ValueError("price_floor must not exceed price_cap")
    if not price_floor <= price <= price_cap:
        raise ValueError(f"price {price} outside bounds [{price_floor}, {price_cap}]")
    if qty > 0:
        max_loss = price - price_floor
    else:
        max_loss = price_cap - price
    return qty_multiplier * abs(qty) * max_loss


__all__ = ["needed_collateral"]
