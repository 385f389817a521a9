"""
auth/codec.py -- Signed bearer token encode / decode.

Security design decisions:
  JWT: python-jose with HS256 by default. Every token carries sub (user id),
       iat, exp, type and a random jti. Tokens of all four types are signed
       with the same key; the type claim plus the ledger lookup keep a reset
       token from being replayed as a refresh token.

  Expiry: checked here against the injected clock rather than by jose's own
       wall-clock check (verify_exp is disabled). Comparison is on truncated
       Unix seconds and uses >=, so a token is already dead on its exp second.

  Failures: ExpiredTokenError for a well-formed token past its expiry,
       MalformedTokenError for everything else a client can send. SigningError
       is reserved for key-configuration faults on the signing side.

The codec is pure. It never reads or writes the ledger.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime

from jose import jwt
from jose.exceptions import JOSEError

from auth.errors import ExpiredTokenError, MalformedTokenError, SigningError
from auth.models import TokenClaims, TokenType
from core.clock import to_unix

logger = logging.getLogger("authledger.codec")

DEFAULT_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("sub", "iat", "exp", "type", "jti")


class CredentialCodec:
    """Create and verify signed tokens.

    Usage:
        codec = CredentialCodec(settings.secret_key, SystemClock())
        token = codec.sign(user_id, expires, TokenType.ACCESS)
        claims = codec.verify(token)
    """

    def __init__(self, secret_key: str, clock, algorithm: str = DEFAULT_ALGORITHM) -> None:
        self._secret_key = secret_key
        self._clock = clock
        self._algorithm = algorithm

    def sign(self, subject: int, expires: datetime, token_type: TokenType) -> str:
        """Sign a claim set for subject, valid until expires (truncated to the second).

        Raises SigningError if the key is empty or the algorithm is unusable.
        """
        if not self._secret_key:
            raise SigningError("Signing key is empty")
        payload = {
            "sub": str(subject),
            "iat": to_unix(self._clock.now()),
            "exp": to_unix(expires),
            "type": TokenType(token_type).value,
            "jti": secrets.token_urlsafe(16),
        }
        try:
            return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        except JOSEError as exc:
            logger.error("Token signing failed with algorithm %s", self._algorithm)
            raise SigningError(f"Token signing failed: {exc}") from exc

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry, then return the decoded claims.

        Raises ExpiredTokenError when now >= exp, MalformedTokenError otherwise.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            raise MalformedTokenError(f"Invalid token: {exc}") from exc

        claims = _parse_claims(payload)
        if to_unix(self._clock.now()) >= claims.expires_at:
            raise ExpiredTokenError()
        return claims


def _parse_claims(payload: dict) -> TokenClaims:
    missing = [name for name in _REQUIRED_CLAIMS if name not in payload]
    if missing:
        raise MalformedTokenError(f"Missing claims: {', '.join(missing)}")
    try:
        subject = int(payload["sub"])
        issued_at = payload["iat"]
        expires_at = payload["exp"]
        token_type = TokenType(payload["type"])
    except (TypeError, ValueError) as exc:
        raise MalformedTokenError(f"Malformed token payload: {exc}") from exc
    # bool is an int subclass; a literal true/false timestamp is still garbage
    for value in (issued_at, expires_at):
        if not isinstance(value, int) or isinstance(value, bool):
            raise MalformedTokenError("Timestamp claims must be integers")
    if not isinstance(payload["jti"], str):
        raise MalformedTokenError("jti claim must be a string")
    return TokenClaims(
        subject=subject,
        issued_at=issued_at,
        expires_at=expires_at,
        token_type=token_type,
        token_id=payload["jti"],
    )
