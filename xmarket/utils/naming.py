from __future__ import annotations

from typing import Optional

from xmarket.execution.models import ParsedContractName

_SEPARATOR = "_"


def parse_standardized_contract_name(name: str) -> Optional[ParsedContractName]:
    """Split ``REF_COLLATERAL_PROVIDER_EXPIRY_TEXT`` into its parts.

    Returns None when the name does not have exactly five parts or the
    expiration part is not an integer timestamp.
    """
    parts = name.split(_SEPARATOR)
    if len(parts) != 5:
        return None
    reference_asset, collateral_token, data_provider, expiration, user_text = parts
    if not expiration.isdigit():
        return None
    return ParsedContractName(
        reference_asset=reference_asset,
        collateral_token=collateral_token,
        data_provider=data_provider,
        expiration_timestamp=int(expiration),
        user_text=user_text,
    )


def create_standardized_contract_name(
    reference_asset: str,
    collateral_token: str,
    data_provider: str,
    expiration_timestamp: int,
    user_text: str,
) -> str:
    parts = [reference_asset, collateral_token, data_provider, str(int(expiration_timestamp)), user_text]
    for part in parts:
        if not part or _SEPARATOR in part:
            raise ValueError(f"invalid contract name component: {part!r}")
    return _SEPARATOR.join(parts)


__all__ = ["parse_standardized_contract_name", "create_standardized_contract_name"]
