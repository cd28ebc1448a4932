from __future__ import annotations

from typing import Any

from eth_utils import is_address


def assert_address(name: str, value: Any) -> str:
    """Return ``value`` unchanged when it is a 20-byte hex address, else raise ValueError."""
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"{name} is not a valid address: {value!r}")
    return value


def assert_base_unit_amount(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer amount of base units, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


__all__ = ["assert_address", "assert_base_unit_amount", "same_address"]
