"""Unit tests for local-key order signing and recovery."""

import pytest
from eth_account import Account

from xmarket.execution.models import ECSignature
from xmarket.ledger.memory import compute_order_hash
from xmarket.ledger.signer import LocalAccountSigner, recover_signer
from xmarket.utils.signature import parse_ec_signature

MAKER_KEY = "0x" + "11" * 32
OTHER_KEY = "0x" + "22" * 32


def _hash(salt: int = 1) -> str:
    return compute_order_hash(
        "0x" + "a" * 40,
        ["0x" + "1" * 40, "0x" + "0" * 40, "0x" + "3" * 40],
        [0, 0, 100000, 2_000_000_000, salt],
        -100,
    )


class TestOrderHash:
    def test_is_32_bytes_and_deterministic(self):
        digest = _hash()
        assert digest.startswith("0x") and len(digest) == 66
        assert digest == _hash()

    def test_salt_changes_hash(self):
        assert _hash(1) != _hash(2)


class TestLocalAccountSigner:
    """Signing an order hash as a personal message."""

    @pytest.mark.asyncio
    async def test_sign_then_recover(self):
        signer = LocalAccountSigner.from_keys(MAKER_KEY, OTHER_KEY)
        maker = Account.from_key(MAKER_KEY).address
        order_hash = _hash()

        raw = await signer.sign_message(maker, order_hash)
        signature = parse_ec_signature(raw)

        assert signature.v in (27, 28)
        assert recover_signer(order_hash, signature) == maker

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self):
        signer = LocalAccountSigner.from_keys(MAKER_KEY)
        maker = Account.from_key(MAKER_KEY).address
        raw = await signer.sign_message(maker.lower(), _hash())
        assert recover_signer(_hash(), parse_ec_signature(raw)) == maker

    @pytest.mark.asyncio
    async def test_other_hash_recovers_other_address(self):
        signer = LocalAccountSigner.from_keys(MAKER_KEY)
        maker = Account.from_key(MAKER_KEY).address
        signature: ECSignature = parse_ec_signature(await signer.sign_message(maker, _hash(1)))
        assert recover_signer(_hash(2), signature) != maker

    @pytest.mark.asyncio
    async def test_unknown_signer(self):
        signer = LocalAccountSigner.from_keys(MAKER_KEY)
        with pytest.raises(ValueError):
            await signer.sign_message("0x" + "9" * 40, _hash())

    def test_addresses(self):
        signer = LocalAccountSigner.from_keys(MAKER_KEY)
        assert signer.addresses == [Account.from_key(MAKER_KEY).address]
