from __future__ import annotations

from typing import Dict, Iterable, List

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex

from xmarket.execution.models import ECSignature


class LocalAccountSigner:
    """In-process ``ISigner`` holding private keys.

    Signs an order hash as an Ethereum personal message, the same payload a
    browser wallet produces for ``eth_sign`` style requests.
    """

    def __init__(self, accounts: Iterable[LocalAccount]) -> None:
        self._accounts: Dict[str, LocalAccount] = {acct.address.lower(): acct for acct in accounts}

    @classmethod
    def from_keys(cls, *private_keys: str) -> "LocalAccountSigner":
        return cls(Account.from_key(key) for key in private_keys)

    @property
    def addresses(self) -> List[str]:
        return [acct.address for acct in self._accounts.values()]

    def add_account(self, account: LocalAccount) -> None:
        self._accounts[account.address.lower()] = account

    async def sign_message(self, signer: str, message_hash: str) -> str:
        account = self._accounts.get(signer.lower())
        if account is None:
            raise ValueError(f"no key available for signer {signer}")
        signed = account.sign_message(encode_defunct(hexstr=message_hash))
        return to_hex(signed.signature)


def recover_signer(message_hash: str, signature: ECSignature) -> str:
    """Return the checksummed address that produced ``signature`` over ``message_hash``."""
    return Account.recover_message(
        encode_defunct(hexstr=message_hash),
        vrs=(signature.v, int(signature.r, 16), int(signature.s, 16)),
    )


__all__ = ["LocalAccountSigner", "recover_signer"]
