"""
auth/passwords.py -- One-way password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection hashes a password longer than 72 bytes, which bcrypt 4.x rejects.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
ValueError for anything longer. Passwords are measured as UTF-8 bytes here:
hash() refuses an over-long password with InvalidPasswordError, and compare()
reports it as a mismatch. No stored digest can belong to such a password.
"""

from __future__ import annotations

import bcrypt

from auth.errors import InvalidPasswordError

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hash + compare. The salt is generated per hash and embedded in the digest."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._rounds = rounds
        # Compared against when the email is unknown so login takes the same
        # time whether or not the account exists.
        self.dummy_hash = self.hash("authledger_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain. Raises InvalidPasswordError past 72 bytes."""
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise InvalidPasswordError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def compare(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest. A corrupt digest never matches."""
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except ValueError:
            return False
