"""
auth/passwords.py -- bcrypt password hashing and verification.

bcrypt is used directly (no passlib wrapper). The cost factor comes from
Settings.bcrypt_rounds and is fixed into each hash, so raising it later only
affects newly hashed passwords.

bcrypt ignores or rejects input past 72 bytes depending on the library
version. The request schema caps passwords at MAX_PASSWORD_BYTES so hashing
never sees such input; verification treats it as a mismatch.

verify_password() never raises. A malformed stored hash is a failed login,
not a 500.
"""

from __future__ import annotations

import bcrypt

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72

DEFAULT_ROUNDS = 10


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> tuple[str, str]:
    """Return (hash, salt) for the plaintext password.

    The caller must have validated the length already.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain.encode("utf-8"), salt)
    return hashed.decode("utf-8"), salt.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash. Computed once at import so the first
# unknown-email login is not measurably slower than later ones.
_DUMMY_HASH, _ = hash_password("upholstr_timing_dummy")


def burn_verification(plain: str) -> None:
    """Run one bcrypt verification against a dummy hash and discard the result.

    Called for unknown emails so they cost the same as a wrong password.
    """
    verify_password(plain, _DUMMY_HASH)
