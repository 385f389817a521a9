"""
auth/issuer.py -- Mint tokens with type-specific lifetimes.

ACCESS tokens are signed and handed out, nothing more -- they are verified by
signature and expiry alone and cannot be revoked, which is why their lifetime
is minutes. Every other type is signed AND written to the ledger, so it can be
revoked, consumed once, and purged as a family.

Single-purpose tokens (reset / verify) are not purged at issuance. Several
reset links may be outstanding at once; whichever is used first wins and the
authenticator purges the rest.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from auth.models import AuthTokens, IssuedToken, TokenType
from core.clock import from_unix, to_unix

_SINGLE_PURPOSE_TYPES = (TokenType.RESET_PASSWORD, TokenType.VERIFY_EMAIL)


@dataclass(frozen=True)
class TokenLifetimes:
    access: timedelta = timedelta(minutes=30)
    refresh: timedelta = timedelta(days=30)
    reset_password: timedelta = timedelta(minutes=10)
    verify_email: timedelta = timedelta(minutes=10)

    @classmethod
    def from_settings(cls, settings) -> "TokenLifetimes":
        return cls(
            access=timedelta(minutes=settings.access_token_expire_minutes),
            refresh=timedelta(days=settings.refresh_token_expire_days),
            reset_password=timedelta(minutes=settings.reset_password_expire_minutes),
            verify_email=timedelta(minutes=settings.verify_email_expire_minutes),
        )

    def for_type(self, token_type: TokenType) -> timedelta:
        return {
            TokenType.ACCESS: self.access,
            TokenType.REFRESH: self.refresh,
            TokenType.RESET_PASSWORD: self.reset_password,
            TokenType.VERIFY_EMAIL: self.verify_email,
        }[TokenType(token_type)]


class CredentialIssuer:
    """Compose the codec and the ledger into token issuance."""

    def __init__(self, codec, ledger, clock, lifetimes: TokenLifetimes | None = None) -> None:
        self._codec = codec
        self._ledger = ledger
        self._clock = clock
        self._lifetimes = lifetimes or TokenLifetimes()

    def issue_access_and_renewal(self, user_id: int) -> AuthTokens:
        """Mint an access token and a ledger-backed refresh token for user_id."""
        access = self._mint(user_id, TokenType.ACCESS)
        refresh = self._mint(user_id, TokenType.REFRESH)
        self._ledger.record(refresh.token, user_id, TokenType.REFRESH, refresh.expires)
        return AuthTokens(access=access, refresh=refresh)

    def issue_single_purpose(self, user_id: int, token_type: TokenType) -> str:
        """Mint and record a RESET_PASSWORD or VERIFY_EMAIL token.

        Raises ValueError for any other type.
        """
        token_type = TokenType(token_type)
        if token_type not in _SINGLE_PURPOSE_TYPES:
            raise ValueError(f"{token_type.value} is not a single-purpose token type")
        issued = self._mint(user_id, token_type)
        self._ledger.record(issued.token, user_id, token_type, issued.expires)
        return issued.token

    def issue_reset_password(self, user_id: int) -> str:
        return self.issue_single_purpose(user_id, TokenType.RESET_PASSWORD)

    def issue_verify_email(self, user_id: int) -> str:
        return self.issue_single_purpose(user_id, TokenType.VERIFY_EMAIL)

    def _mint(self, user_id: int, token_type: TokenType) -> IssuedToken:
        # Truncate once so the returned expiry, the exp claim and the ledger row agree.
        expires = from_unix(to_unix(self._clock.now() + self._lifetimes.for_type(token_type)))
        token = self._codec.sign(user_id, expires, token_type)
        return IssuedToken(token=token, expires=expires)
