"""
Password hashing for Ortomat accounts.

Hashes are bcrypt strings ($2b$<rounds>$<salt+digest>), the format the
platform's login checks against. Each call generates a fresh salt.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10
MIN_ROUNDS = 4
MAX_ROUNDS = 31
MAX_PASSWORD_BYTES = 72


def hash_password(plaintext: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a plaintext password with a fresh bcrypt salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("ascii")


def verify_password(plaintext: str, encoded: str) -> bool:
    """Check a plaintext password against a bcrypt hash.

    Malformed hashes never verify.
    """
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), encoded.encode("utf-8"))
    except (AttributeError, ValueError):
        return False
