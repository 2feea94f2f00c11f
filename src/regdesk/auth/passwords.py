"""
regdesk.auth.passwords

bcrypt password hashing.

bcrypt only looks at the first 72 bytes of a password; longer inputs are truncated
explicitly so recent bcrypt releases (which reject them) keep matching hashes produced
by older tooling.
"""

from __future__ import annotations

import bcrypt

_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def check_password(password: str, password_hash: str) -> bool:
    # checkpw compares in constant time; a malformed hash raises ValueError.
    return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))


def without_whitespace(password: str) -> str:
    return "".join(password.split())
