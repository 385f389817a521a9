"""Unit tests for auth/passwords.py -- bcrypt hashing and the 72-byte limit.

The limit is measured in UTF-8 bytes, not characters: "é" is two bytes.
"""

from __future__ import annotations

import pytest

from auth.errors import InvalidPasswordError
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher


class TestHashCompare:
    def test_hash_then_compare(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("secret123")
        assert digest != "secret123"
        assert hasher.compare("secret123", digest) is True
        assert hasher.compare("secret124", digest) is False

    def test_corrupt_digest_never_matches(self, hasher: PasswordHasher) -> None:
        assert hasher.compare("secret123", "not-a-bcrypt-digest") is False


class TestLengthLimit:
    def test_exactly_at_limit(self, hasher: PasswordHasher) -> None:
        plain = "p" * MAX_PASSWORD_BYTES
        assert hasher.compare(plain, hasher.hash(plain)) is True

    def test_over_limit_rejected(self, hasher: PasswordHasher) -> None:
        with pytest.raises(InvalidPasswordError) as exc_info:
            hasher.hash("p" * (MAX_PASSWORD_BYTES + 1))
        assert exc_info.value.status_code == 400

    def test_limit_counts_bytes(self, hasher: PasswordHasher) -> None:
        assert hasher.compare("é" * 36, hasher.hash("é" * 36)) is True  # 72 bytes
        with pytest.raises(InvalidPasswordError):
            hasher.hash("é" * 37)  # 74 bytes

    def test_over_limit_compare_is_mismatch(self, hasher: PasswordHasher) -> None:
        """A 72-byte prefix match must not log anyone in."""
        digest = hasher.hash("p" * MAX_PASSWORD_BYTES)
        assert hasher.compare("p" * 80, digest) is False
