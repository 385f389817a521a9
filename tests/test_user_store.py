"""Unit tests for auth/store.py -- UserStore queries and writes.

Covers:
- create_user / get_by_email / get_by_id round trip
- duplicate email is ConflictError (on create and on update)
- update_user whitelist, return value and missing-user behaviour
- delete_user reports whether a row was removed
"""

from __future__ import annotations

import pytest

from auth.errors import ConflictError
from auth.models import User
from auth.store import UserStore


def _user(email: str = "a@x.com") -> User:
    return User(email=email, hashed_password="$2b$04$notarealhash", name="Alice")


class TestUserQueries:
    def test_create_and_get_by_email(self, user_store: UserStore) -> None:
        uid = user_store.create_user(_user())

        user = user_store.get_by_email("a@x.com")

        assert user is not None
        assert user.id == uid
        assert user.name == "Alice"
        assert user.role == "user"
        assert user.is_email_verified is False
        assert user.created_at and user.updated_at

    def test_get_by_id(self, user_store: UserStore) -> None:
        uid = user_store.create_user(_user())
        assert user_store.get_by_id(uid).email == "a@x.com"

    def test_missing_user_is_none(self, user_store: UserStore) -> None:
        assert user_store.get_by_email("nobody@x.com") is None
        assert user_store.get_by_id(12345) is None

    def test_duplicate_email_is_conflict(self, user_store: UserStore) -> None:
        user_store.create_user(_user())
        with pytest.raises(ConflictError) as exc_info:
            user_store.create_user(_user())
        assert exc_info.value.message == "Email already taken"
        assert exc_info.value.status_code == 400


class TestUserWrites:
    def test_update_returns_fresh_record(self, user_store: UserStore) -> None:
        uid = user_store.create_user(_user())

        updated = user_store.update_user(uid, hashed_password="$2b$04$another", is_email_verified=True)

        assert updated.hashed_password == "$2b$04$another"
        assert updated.is_email_verified is True
        assert user_store.get_by_id(uid).is_email_verified is True

    def test_update_missing_user_returns_none(self, user_store: UserStore) -> None:
        assert user_store.update_user(999, is_email_verified=True) is None

    def test_update_rejects_unknown_fields(self, user_store: UserStore) -> None:
        uid = user_store.create_user(_user())
        with pytest.raises(ValueError):
            user_store.update_user(uid, id=5)

    def test_update_to_taken_email_is_conflict(self, user_store: UserStore) -> None:
        user_store.create_user(_user("a@x.com"))
        uid = user_store.create_user(_user("b@x.com"))
        with pytest.raises(ConflictError):
            user_store.update_user(uid, email="a@x.com")

    def test_delete_user(self, user_store: UserStore) -> None:
        uid = user_store.create_user(_user())
        assert user_store.delete_user(uid) is True
        assert user_store.delete_user(uid) is False
        assert user_store.get_by_id(uid) is None
