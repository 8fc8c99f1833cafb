from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Optional, Tuple

from passlib.context import CryptContext

from romaneio.util.hashing import sha256_hex


DEFAULT_PASSWORD_ROUNDS = 29000
MIN_TOKEN_BYTES = 16  # 128 bits


@lru_cache(maxsize=8)
def _pwd(rounds: int = DEFAULT_PASSWORD_ROUNDS) -> CryptContext:
    # min_rounds == default_rounds: anything hashed with fewer rounds needs_update.
    r = max(1, int(rounds))
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=r,
        pbkdf2_sha256__min_rounds=r,
    )


def hash_password(password: str, *, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd(rounds).hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd().verify(password, password_hash)
    except (ValueError, TypeError):
        # Unrecognized / malformed hash.
        return False


def verify_and_update_password(
    password: str,
    password_hash: str,
    *,
    rounds: int = DEFAULT_PASSWORD_ROUNDS,
) -> Tuple[bool, Optional[str]]:
    """Verify and, when the stored hash is outdated, return a replacement.

    Returns (ok, new_hash). new_hash is None unless ok and the hash used weaker
    parameters than the current policy.
    """
    if not password or not password_hash:
        return False, None
    try:
        return _pwd(rounds).verify_and_update(password, password_hash)
    except (ValueError, TypeError):
        return False, None


def dummy_verify(*, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> bool:
    """Spend roughly one verify() worth of time. Always False."""
    _pwd(rounds).dummy_verify()
    return False


def generate_token_secret(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(max(MIN_TOKEN_BYTES, int(nbytes)))


def hash_token_secret(secret: str) -> str:
    if not secret:
        raise ValueError("token_secret_blank")
    return sha256_hex(secret)
