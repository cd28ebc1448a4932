from __future__ import annotations

from eth_utils import decode_hex, encode_hex

from xmarket.execution.models import ECSignature


def parse_ec_signature(raw: str) -> ECSignature:
    """Split a 65-byte ``r || s || v`` hex signature into its parts.

    Wallets that return a 0/1 recovery id get it shifted to 27/28.
    """
    try:
        data = decode_hex(raw)
    except ValueError as exc:
        raise ValueError("signature is not valid hex") from exc
    if len(data) != 65:
        raise ValueError(f"signature must be 65 bytes, got {len(data)}")
    v = data[64]
    if v < 27:
        v += 27
    return ECSignature(v=v, r=encode_hex(data[:32]), s=encode_hex(data[32:64]))


__all__ = ["parse_ec_signature"]
