"""
tests/test_passwords.py -- Unit tests for bcrypt hashing in auth/passwords.py.

Hashes use cost 4 so the suite stays fast; the cost factor does not change
the behavior under test.
"""

from __future__ import annotations

from auth.passwords import burn_verification, hash_password, verify_password

ROUNDS = 4


class TestHashPassword:
    def test_hash_verifies_with_original_password(self) -> None:
        hashed, _salt = hash_password("Secret123", rounds=ROUNDS)
        assert verify_password("Secret123", hashed) is True

    def test_wrong_password_does_not_verify(self) -> None:
        hashed, _salt = hash_password("Secret123", rounds=ROUNDS)
        assert verify_password("Secret124", hashed) is False

    def test_salt_is_prefix_of_hash(self) -> None:
        """The stored salt is the bcrypt salt embedded in the hash."""
        hashed, salt = hash_password("Secret123", rounds=ROUNDS)
        assert hashed.startswith(salt)
        assert salt.startswith("$2b$04$")

    def test_same_password_hashes_differently(self) -> None:
        first, _ = hash_password("Secret123", rounds=ROUNDS)
        second, _ = hash_password("Secret123", rounds=ROUNDS)
        assert first != second

    def test_hash_is_not_plaintext(self) -> None:
        hashed, _ = hash_password("Secret123", rounds=ROUNDS)
        assert "Secret123" not in hashed


class TestVerifyPassword:
    """verify_password() must return False rather than raise on bad input."""

    def test_malformed_hash_returns_false(self) -> None:
        assert verify_password("Secret123", "not-a-bcrypt-hash") is False

    def test_empty_hash_returns_false(self) -> None:
        assert verify_password("Secret123", "") is False

    def test_burn_verification_returns_nothing(self) -> None:
        assert burn_verification("anything") is None
