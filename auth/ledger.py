"""
auth/ledger.py -- SQLAlchemy Core persistence for issued non-access tokens.

Every refresh, reset-password and verify-email token the issuer mints gets a
row here. A token is only honoured while its row exists and is not
blacklisted; signature and expiry checks happen in the codec, not here.

Pattern: Repository + Data Mapper (same as auth/store.py).

Atomicity:
  consume() is a single conditional DELETE whose rowcount is observed. Two
  requests racing on the same token both reach the DELETE, exactly one of
  them sees rowcount == 1. A lookup-then-delete pair would let both win.

  The ledger does not auto-expire rows. find_valid() returns expired rows;
  callers compare LedgerEntry.expires against their clock. purge_expired()
  is the maintenance path for dead rows.

No foreign key to users.id: the ledger may live in a different database
from the user store.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Boolean, Column, Enum, Index, Integer, MetaData, String, Table, Text, and_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError
from auth.models import LedgerEntry, TokenType
from auth.store import make_engine
from core.clock import SystemClock, from_unix, to_unix

logger = logging.getLogger("authledger.ledger")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_tokens = Table(
    "tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token", Text, nullable=False, unique=True),
    Column(
        "type",
        Enum(TokenType, name="token_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    ),
    Column("user_id", Integer, nullable=False),
    Column("expires", Integer, nullable=False),  # Unix seconds, UTC
    Column("blacklisted", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Index("ix_tokens_user_type", "user_id", "type"),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TokenLedger:
    """Repository for LedgerEntry rows.

    Usage:
        ledger = TokenLedger(settings.database_url, clock)
        ledger.record(token, user_id, TokenType.REFRESH, expires)
        entry = ledger.find_valid(token, TokenType.REFRESH, user_id)
        if entry and ledger.consume(token, TokenType.REFRESH, user_id):
            ...
        ledger.close()
    """

    def __init__(self, db_url: str, clock=None) -> None:
        self.engine: Engine = make_engine(db_url)
        self._clock = clock or SystemClock()
        _metadata.create_all(self.engine)

    def record(self, token: str, user_id: int, token_type: TokenType, expires: datetime) -> int:
        """Insert a new entry and return its ID.

        Raises ConflictError if the token string is already recorded. With a
        random jti in every token this only happens on caller error.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _tokens.insert().values(
                        token=token,
                        type=TokenType(token_type),
                        user_id=user_id,
                        expires=to_unix(expires),
                        blacklisted=False,
                        created_at=self._clock.now().isoformat(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("Token already recorded") from exc
        entry_id = result.inserted_primary_key[0]
        logger.debug("Recorded %s token %s for user %s", TokenType(token_type).value, entry_id, user_id)
        return entry_id

    def find_valid(self, token: str, token_type: TokenType, user_id: int) -> LedgerEntry | None:
        """Return the non-blacklisted entry matching token, type and owner, or None.

        Expiry is not checked here.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _tokens.select().where(
                    and_(
                        _tokens.c.token == token,
                        _tokens.c.type == TokenType(token_type),
                        _tokens.c.user_id == user_id,
                        _tokens.c.blacklisted.is_(False),
                    )
                )
            ).fetchone()
        return _row_to_entry(row) if row is not None else None

    def revoke(self, token: str) -> None:
        """Blacklist a token. Idempotent; a missing token is a no-op."""
        with self.engine.connect() as conn:
            conn.execute(_tokens.update().where(_tokens.c.token == token).values(blacklisted=True))
            conn.commit()

    def revoke_all(self, user_id: int, token_type: TokenType) -> int:
        """Blacklist every live entry of one type for one owner. Returns rows changed."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.update()
                .where(
                    and_(
                        _tokens.c.user_id == user_id,
                        _tokens.c.type == TokenType(token_type),
                        _tokens.c.blacklisted.is_(False),
                    )
                )
                .values(blacklisted=True)
            )
            conn.commit()
        return result.rowcount

    def consume(self, token: str, token_type: TokenType | None = None, user_id: int | None = None) -> bool:
        """Delete a non-blacklisted entry in one statement.

        Returns True if this call deleted the row, False if it was already gone
        (or blacklisted, or did not match the optional type / owner filters).
        """
        conditions = [_tokens.c.token == token, _tokens.c.blacklisted.is_(False)]
        if token_type is not None:
            conditions.append(_tokens.c.type == TokenType(token_type))
        if user_id is not None:
            conditions.append(_tokens.c.user_id == user_id)
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(and_(*conditions)))
            conn.commit()
        return result.rowcount > 0

    def purge_by_owner_and_type(self, user_id: int, token_type: TokenType) -> int:
        """Delete every entry of one type for one owner, blacklisted or not."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.delete().where(and_(_tokens.c.user_id == user_id, _tokens.c.type == TokenType(token_type)))
            )
            conn.commit()
        return result.rowcount

    def purge_expired(self, now: datetime) -> int:
        """Delete all entries whose expiry is at or before now. Returns rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.expires <= to_unix(now)))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired ledger entries", result.rowcount)
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_entry(row) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        token=row.token,
        token_type=TokenType(row.type),
        user_id=row.user_id,
        expires=from_unix(row.expires),
        blacklisted=bool(row.blacklisted),
        created_at=row.created_at,
    )
