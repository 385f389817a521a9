"""
tests/conftest.py -- Shared fixtures for authledger tests.

This module provides:
  - clock: ManualClock pinned to a fixed instant, advanced explicitly by tests
  - user_store / ledger: fresh in-memory SQLite repositories per test
  - codec / issuer / hasher: real components wired to the manual clock
  - mailer: an EmailService that records messages instead of sending them
  - authenticator: the full object graph, same wiring as main.build_services()
  - alice: a registered user (a@x.com / secret123)

Plain sqlite:///:memory: is safe here: everything runs on the test thread,
and SQLAlchemy keeps one connection per thread for in-memory SQLite, so all
queries of one store see the same database.

The DEBUG env var must be set before core.config is imported anywhere so
get_settings() can auto-generate SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any core/auth import.
os.environ.setdefault("DEBUG", "true")

import pytest

from auth.authenticator import Authenticator
from auth.codec import CredentialCodec
from auth.issuer import CredentialIssuer, TokenLifetimes
from auth.ledger import TokenLedger
from auth.mailer import EmailService
from auth.models import UserProfile
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.clock import ManualClock

START = datetime(2024, 7, 9, 12, 0, 0, tzinfo=timezone.utc)


class RecordingEmailService(EmailService):
    """EmailService that appends to .sent instead of talking SMTP.

    Set deliver = False to simulate a delivery failure.
    """

    def __init__(self) -> None:
        super().__init__(base_url="http://link-to-app")
        self.sent: list[tuple[str, str, str]] = []
        self.deliver = True

    def send(self, to: str, subject: str, body: str) -> bool:
        self.sent.append((to, subject, body))
        return self.deliver


# ---------------------------------------------------------------------------
# Leaf components
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def ledger(clock: ManualClock) -> Generator[TokenLedger, None, None]:
    store = TokenLedger("sqlite:///:memory:", clock)
    yield store
    store.close()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast; the algorithm is unchanged.
    return PasswordHasher(rounds=4)


@pytest.fixture
def secret_key() -> str:
    return "test-secret-key-that-is-at-least-32-characters-long"


@pytest.fixture
def codec(clock: ManualClock, secret_key: str) -> CredentialCodec:
    return CredentialCodec(secret_key, clock)


@pytest.fixture
def lifetimes() -> TokenLifetimes:
    return TokenLifetimes(
        access=timedelta(minutes=30),
        refresh=timedelta(days=30),
        reset_password=timedelta(minutes=30),
        verify_email=timedelta(minutes=10),
    )


@pytest.fixture
def issuer(codec: CredentialCodec, ledger: TokenLedger, clock: ManualClock, lifetimes: TokenLifetimes) -> CredentialIssuer:
    return CredentialIssuer(codec, ledger, clock, lifetimes)


@pytest.fixture
def mailer() -> RecordingEmailService:
    return RecordingEmailService()


# ---------------------------------------------------------------------------
# Full object graph
# ---------------------------------------------------------------------------


@pytest.fixture
def authenticator(
    user_store: UserStore,
    ledger: TokenLedger,
    issuer: CredentialIssuer,
    codec: CredentialCodec,
    hasher: PasswordHasher,
    mailer: RecordingEmailService,
    clock: ManualClock,
) -> Authenticator:
    return Authenticator(
        users=user_store,
        ledger=ledger,
        issuer=issuer,
        codec=codec,
        hasher=hasher,
        mailer=mailer,
        clock=clock,
    )


@pytest.fixture
def alice(authenticator: Authenticator) -> UserProfile:
    """A registered user: a@x.com / secret123."""
    return authenticator.register("a@x.com", "secret123", name="Alice")
