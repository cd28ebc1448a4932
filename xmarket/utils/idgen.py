from __future__ import annotations

import secrets

MAX_SALT = 2 ** 256


def generate_pseudo_random_salt() -> int:
    """Return a uniformly random salt in ``[0, 2**256)`` for order uniqueness."""
    return secrets.randbelow(MAX_SALT)


__all__ = ["generate_pseudo_random_salt", "MAX_SALT"]
