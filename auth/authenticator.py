"""
auth/authenticator.py -- Login, logout, refresh rotation, password reset and
email verification.

Each token-consuming flow runs the same checks in the same order:
  1. codec.verify       -- signature, structure, expiry (no I/O)
  2. ledger.find_valid  -- row exists for (token, type, sub) and is not blacklisted
  3. entry expiry       -- the ledger is passive, so the row's expiry is re-checked
  4. ledger.consume     -- one conditional DELETE; losing a race counts as failure

Any TokenError from steps 1-4 is logged at DEBUG and re-raised as the flow's
single caller-facing error (UnauthenticatedError, ResetFailedError,
VerificationFailedError). Callers cannot tell an expired token from a
revoked one. Store errors are not caught.

Enumeration:
  login() answers unknown email and wrong password identically, and runs a
  bcrypt compare in both cases so response time does not leak either.
  request_password_reset() does raise NotFoundError for an unknown email.
"""

from __future__ import annotations

import logging

from auth.errors import (
    ExpiredTokenError,
    InvalidCredentialsError,
    MalformedTokenError,
    NotFoundError,
    ResetFailedError,
    TokenError,
    UnauthenticatedError,
    UnknownTokenError,
    VerificationFailedError,
)
from auth.mailer import redact_email
from auth.models import AuthTokens, LedgerEntry, TokenType, User, UserProfile

logger = logging.getLogger("authledger.auth")


class Authenticator:
    """Credential lifecycle operations over the user store, ledger, issuer and codec.

    Usage:
        auth = Authenticator(users, ledger, issuer, codec, hasher, mailer, clock)
        profile = auth.login("a@x.com", "secret123")
        tokens = auth.issue_tokens(profile.id)
        tokens = auth.refresh(tokens.refresh.token)
    """

    def __init__(self, users, ledger, issuer, codec, hasher, mailer, clock) -> None:
        self._users = users
        self._ledger = ledger
        self._issuer = issuer
        self._codec = codec
        self._hasher = hasher
        self._mailer = mailer
        self._clock = clock

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, name: str | None = None) -> UserProfile:
        """Create a user with a hashed password.

        Raises ConflictError if the email is taken, InvalidPasswordError if the
        password is longer than 72 bytes.
        """
        user = User(email=email, name=name, hashed_password=self._hasher.hash(password))
        user_id = self._users.create_user(user)
        created = self._users.get_by_id(user_id)
        return created.to_profile()

    def login(self, email: str, password: str) -> UserProfile:
        """Check email + password and return the user without its password.

        No token is issued here; call issue_tokens() once login succeeds.
        """
        user = self._users.get_by_email(email)
        if user is None:
            # Same bcrypt cost as a real check -- do NOT return before hashing
            self._hasher.compare(password, self._hasher.dummy_hash)
            raise InvalidCredentialsError()
        if not self._hasher.compare(password, user.hashed_password):
            raise InvalidCredentialsError()
        return user.to_profile()

    def issue_tokens(self, user_id: int) -> AuthTokens:
        return self._issuer.issue_access_and_renewal(user_id)

    def authenticate_access(self, access_token: str) -> UserProfile:
        """Resolve a bearer access token to its user. Any failure is UnauthenticatedError."""
        try:
            claims = self._codec.verify(access_token)
            if claims.token_type is not TokenType.ACCESS:
                raise MalformedTokenError("Invalid token type")
        except TokenError as exc:
            logger.debug("Access token rejected: %s", exc.message)
            raise UnauthenticatedError() from exc
        user = self._users.get_by_id(claims.subject)
        if user is None:
            raise UnauthenticatedError()
        return user.to_profile()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str) -> None:
        """Delete a live refresh token. Raises NotFoundError if there is none to delete."""
        if not self._ledger.consume(refresh_token, TokenType.REFRESH):
            raise NotFoundError()

    def refresh(self, refresh_token: str) -> AuthTokens:
        """Rotate a refresh token: consume it and issue a brand-new pair.

        Single use. A replay, or the loser of two concurrent calls with the
        same token, gets UnauthenticatedError.
        """
        try:
            entry = self._consume_token(refresh_token, TokenType.REFRESH)
        except TokenError as exc:
            logger.debug("Refresh rejected: %s", exc.message)
            raise UnauthenticatedError() from exc
        return self._issuer.issue_access_and_renewal(entry.user_id)

    def revoke_sessions(self, user_id: int) -> int:
        """Blacklist every outstanding refresh token of a user. Returns the count."""
        revoked = self._ledger.revoke_all(user_id, TokenType.REFRESH)
        logger.info("Revoked %d refresh token(s) for user %s", revoked, user_id)
        return revoked

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def request_password_reset(self, email: str) -> str:
        """Issue a reset token for email and mail the link. Returns the token.

        Raises NotFoundError if no user has that email. Unlike login() this
        does reveal whether an account exists; a transport that must not leak
        that can catch NotFoundError and answer as if the mail went out.
        """
        user = self._users.get_by_email(email)
        if user is None:
            raise NotFoundError("No users found with this email")
        token = self._issuer.issue_reset_password(user.id)
        if not self._mailer.send_reset_password_email(user.email, token):
            logger.warning("Reset email to %s was not delivered", redact_email(user.email))
        return token

    def complete_password_reset(self, reset_token: str, new_password: str) -> None:
        """Set a new password and invalidate every outstanding reset token of the user.

        The password is hashed before the token is touched, so an unusable
        password (InvalidPasswordError) leaves the reset link valid.
        """
        hashed_password = self._hasher.hash(new_password)
        try:
            entry = self._consume_token(reset_token, TokenType.RESET_PASSWORD)
        except TokenError as exc:
            logger.debug("Password reset rejected: %s", exc.message)
            raise ResetFailedError() from exc
        updated = self._users.update_user(entry.user_id, hashed_password=hashed_password)
        if updated is None:
            raise ResetFailedError()
        self._ledger.purge_by_owner_and_type(entry.user_id, TokenType.RESET_PASSWORD)
        logger.info("Password reset completed for user %s", entry.user_id)

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    def request_email_verification(self, user_id: int) -> str:
        """Issue a verification token for user_id and mail the link. Returns the token."""
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        token = self._issuer.issue_verify_email(user.id)
        if not self._mailer.send_verification_email(user.email, token):
            logger.warning("Verification email to %s was not delivered", redact_email(user.email))
        return token

    def complete_email_verification(self, verify_token: str) -> None:
        """Mark the token owner's email verified and purge their other verify tokens."""
        try:
            entry = self._consume_token(verify_token, TokenType.VERIFY_EMAIL)
        except TokenError as exc:
            logger.debug("Email verification rejected: %s", exc.message)
            raise VerificationFailedError() from exc
        self._ledger.purge_by_owner_and_type(entry.user_id, TokenType.VERIFY_EMAIL)
        if self._users.update_user(entry.user_id, is_email_verified=True) is None:
            raise VerificationFailedError()
        logger.info("Email verified for user %s", entry.user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _consume_token(self, token: str, token_type: TokenType) -> LedgerEntry:
        """Run the verify -> lookup -> expiry -> consume chain. Raises TokenError subclasses."""
        claims = self._codec.verify(token)
        if claims.token_type is not token_type:
            raise MalformedTokenError("Invalid token type")
        entry = self._ledger.find_valid(token, token_type, claims.subject)
        if entry is None:
            raise UnknownTokenError()
        if entry.is_expired(self._clock.now()):
            raise ExpiredTokenError()
        if not self._ledger.consume(token, token_type, claims.subject):
            raise UnknownTokenError("Token already consumed")
        return entry
