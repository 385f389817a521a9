"""
auth/errors.py -- Exception taxonomy for the credential lifecycle.

Two layers:
  Token-level errors (TokenError subclasses) are raised by the codec and by
  the authenticator's ledger checks. They say exactly what went wrong --
  bad signature, expired, missing from the ledger -- and are logged at DEBUG.

  Caller-facing errors (everything else) are what the Authenticator lets out.
  refresh / reset / verification failures are collapsed into one error each,
  so a caller cannot learn which check rejected the token.

Every error carries a stable `code` string and the `status_code` a transport
layer should answer with. Store connectivity errors (sqlalchemy) are not part
of this taxonomy and propagate untouched.

Layer rule: no imports from other auth/ modules.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all authentication errors."""

    code = "auth_error"
    status_code = 400

    def __init__(self, message: str = "Authentication error"):
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Caller-facing errors
# ---------------------------------------------------------------------------


class InvalidCredentialsError(AuthError):
    """Email or password is incorrect. Deliberately does not say which."""

    code = "bad_credentials"
    status_code = 401

    def __init__(self, message: str = "Incorrect email or password"):
        super().__init__(message)


class UnauthenticatedError(AuthError):
    """A refresh or access token was rejected for any reason."""

    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Please authenticate"):
        super().__init__(message)


class ResetFailedError(AuthError):
    code = "reset_failed"
    status_code = 401

    def __init__(self, message: str = "Password reset failed"):
        super().__init__(message)


class VerificationFailedError(AuthError):
    code = "verification_failed"
    status_code = 401

    def __init__(self, message: str = "Email verification failed"):
        super().__init__(message)


class NotFoundError(AuthError):
    """Logout target or reset/verification subject does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class InvalidPasswordError(AuthError):
    """A new password cannot be hashed (longer than bcrypt accepts)."""

    code = "invalid_password"
    status_code = 400

    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)


class ConflictError(AuthError):
    """A write violated a store uniqueness constraint (duplicate email or token)."""

    code = "conflict"
    status_code = 400

    def __init__(self, message: str = "Conflict"):
        super().__init__(message)


class SigningError(AuthError):
    """The signing key or algorithm is misconfigured. Fatal; never user-triggerable."""

    code = "signing_error"
    status_code = 500

    def __init__(self, message: str = "Token signing is misconfigured"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Token-level errors (re-mapped at the Authenticator boundary)
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    code = "invalid_token"
    status_code = 401

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class MalformedTokenError(TokenError):
    """Signature invalid, token unparsable, or claims missing / ill-typed."""

    def __init__(self, message: str = "Malformed token"):
        super().__init__(message)


class ExpiredTokenError(TokenError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


class UnknownTokenError(TokenError):
    """Cryptographically valid, but absent from the ledger or revoked."""

    def __init__(self, message: str = "Token not found"):
        super().__init__(message)
