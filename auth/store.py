"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper (same as auth/ledger.py).
UserStore is the repository; _row_to_user is the mapper. The authenticator
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  update_user() accepts only whitelisted column names, so a caller can never
  route arbitrary keyword arguments into the UPDATE statement.

DB URL: passed in by the caller (Settings.database_url in production, an
in-memory SQLite URI in tests).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError
from auth.models import User

logger = logging.getLogger("authledger.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255)),
    Column("password", Text, nullable=False),  # bcrypt digest
    Column("role", String(10), nullable=False, server_default="user"),
    Column("is_email_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns update_user() may write, keyed by User attribute name.
_UPDATABLE_FIELDS = {
    "email": "email",
    "name": "name",
    "role": "role",
    "hashed_password": "password",
    "is_email_verified": "is_email_verified",
}


# ---------------------------------------------------------------------------
# SQLite pragmas
# ---------------------------------------------------------------------------


def set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore the request.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine, wiring SQLite connection options where they apply."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", set_sqlite_pragmas)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore(settings.database_url)
        uid = store.create_user(User(email="a@x.com", hashed_password=hasher.hash("secret123")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises ConflictError if the email is already taken. The UNIQUE
        constraint is the authority here, so two concurrent registrations for
        the same address cannot both succeed.
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        name=user.name,
                        password=user.hashed_password,
                        role=user.role,
                        is_email_verified=user.is_email_verified,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("Email already taken") from exc
        user_id = result.inserted_primary_key[0]
        logger.info("Created user %s", user_id)
        return user_id

    def update_user(self, user_id: int, **fields) -> User | None:
        """Update mutable fields on an existing user and return the fresh record.

        Accepted fields: email, name, role, hashed_password, is_email_verified.
        Unknown keys raise ValueError rather than being silently ignored.

        Returns None if user_id was not found. Raises ConflictError if a new
        email collides with another account.
        """
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        values = {_UPDATABLE_FIELDS[name]: value for name, value in fields.items()}
        values["updated_at"] = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("Email already taken") from exc
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Ledger rows owned by the user are not touched; they live in a
        separate table without a foreign key and age out via purge_expired().
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.password,
        role=row.role,
        is_email_verified=bool(row.is_email_verified),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
