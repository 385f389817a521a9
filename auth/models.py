"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Stores, the codec
and the issuer do the work; these classes only own the shape of the data.

Layer rule: no imports from other auth/ modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TokenType(str, Enum):
    """Type tag carried in every signed token and every ledger row.

    REFRESH is the renewal credential. ACCESS tokens are never written to
    the ledger; the other three always are.
    """

    ACCESS = "ACCESS"
    REFRESH = "REFRESH"
    RESET_PASSWORD = "RESET_PASSWORD"
    VERIFY_EMAIL = "VERIFY_EMAIL"


@dataclass
class User:
    """A user record as held by the user store.

    hashed_password is the bcrypt digest and must never leave the core --
    operations that hand a user back to a caller return a UserProfile instead.
    """

    email: str
    hashed_password: str
    id: int | None = None
    name: str | None = None
    role: str = "user"  # "user" or "admin"
    is_email_verified: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            email=self.email,
            name=self.name,
            role=self.role,
            is_email_verified=self.is_email_verified,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """A user record with the password field stripped."""

    id: int | None
    email: str
    name: str | None
    role: str
    is_email_verified: bool
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Decoded claim set of a verified token.

    Timestamps are whole Unix seconds. token_id is the random jti nonce; it
    keeps two tokens minted for the same user, type and second distinct.
    """

    subject: int
    issued_at: int
    expires_at: int
    token_type: TokenType
    token_id: str


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires: datetime


@dataclass(frozen=True)
class AuthTokens:
    """An access/refresh pair as returned by login-time issuance and by refresh."""

    access: IssuedToken
    refresh: IssuedToken


@dataclass
class LedgerEntry:
    """One persisted non-access token.

    blacklisted is the revoked flag. expires is timezone-aware UTC; the ledger
    never filters on it -- callers compare against their clock.
    """

    token: str
    token_type: TokenType
    user_id: int
    expires: datetime
    id: int | None = None
    blacklisted: bool = False
    created_at: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires
