"""
core/config.py -- authledger settings, read from the environment by pydantic-settings.

Only the entry point calls get_settings(). It hands each component the values
that component needs (signing key, lifetimes, database URL, SMTP details);
nothing under auth/ imports this module.

How values are resolved:
  Each field maps to the upper-cased env var of the same name
  (access_token_expire_minutes -> ACCESS_TOKEN_EXPIRE_MINUTES), falling back
  to a .env file in the working directory, then to the default below.

  get_settings() is memoised with lru_cache, so the environment is read once
  per process.

  Two after-validators run once every field is known: one applies the
  SECRET_KEY policy, the other rejects non-positive token lifetimes.

SECRET_KEY policy:
  Keys under 32 characters are refused. One key signs all four token types,
  so a weak key weakens every flow at once.

  With DEBUG unset or false a missing key stops startup. With DEBUG=true a
  throwaway key is generated, and every outstanding token dies on restart.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authledger.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'authledger.db'}"


class Settings(BaseSettings):
    """Every tunable of the credential lifecycle.

    Defaults cover everything except SECRET_KEY, which the validator either
    generates (DEBUG=true) or demands.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    jwt_algorithm: str = "HS256"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Token lifetimes
    # ------------------------------------------------------------------

    access_token_expire_minutes: int = 30
    # Refresh tokens live for days because they are the revocable half of the pair.
    refresh_token_expire_days: int = 30
    reset_password_expire_minutes: int = 10
    verify_email_expire_minutes: int = 10

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Outbound email (optional -- empty SMTP_HOST means dev mode: log only)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = ""
    # Reset and verification links point at the front-end app, not at this service.
    app_base_url: str = "http://localhost:3000"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        DEBUG=true and no key: generate one and warn.
        DEBUG unset or false and no key: raise.
        Any key shorter than 32 characters: raise.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Issued tokens will not verify across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_lifetimes(self) -> "Settings":
        """Every token lifetime must be a positive duration."""
        for name in (
            "access_token_expire_minutes",
            "refresh_token_expire_days",
            "reset_password_expire_minutes",
            "verify_email_expire_minutes",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be a positive integer.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first use.

    Tests that change the environment must call get_settings.cache_clear().
    """
    return Settings()
