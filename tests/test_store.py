"""Unit tests for auth/store.py -- users and refresh tokens in SQLite.

Covers:
- user create / fetch by email and id / delete / duplicate email
- refresh token insert, collision rejection, owner join, purge
- driver failures surface as StoreUnavailableError
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from auth.errors import DuplicateEmailError, StoreUnavailableError
from auth.models import RefreshToken, User
from auth.store import UserStore


def _refresh_token(user_id, *, expires_at: datetime, token: str | None = None) -> RefreshToken:
    now = datetime.now(timezone.utc)
    return RefreshToken(
        token=token or uuid4().hex * 2,
        user_id=user_id,
        created_at=now,
        updated_at=now,
        expires_at=expires_at,
    )


class TestUsers:
    def test_create_and_fetch(self, store: UserStore, password_hash: str) -> None:
        u = User(email="skyler@example.com", hashed_password=password_hash)
        user_id = store.create_user(u)
        assert user_id == u.id
        assert u.created_at is not None and u.updated_at == u.created_at

        by_email = store.get_user_by_email("skyler@example.com")
        by_id = store.get_user_by_id(user_id)
        assert by_email == by_id
        assert by_email.hashed_password == password_hash
        assert by_email.created_at == u.created_at

    def test_missing_user(self, store: UserStore) -> None:
        assert store.get_user_by_email("nobody@example.com") is None
        assert store.get_user_by_id(uuid4()) is None

    def test_email_lookup_is_exact(self, store: UserStore, user: User) -> None:
        assert store.get_user_by_email(user.email.upper()) is None

    def test_duplicate_email(self, store: UserStore, user: User, password_hash: str) -> None:
        with pytest.raises(DuplicateEmailError) as exc_info:
            store.create_user(User(email=user.email, hashed_password=password_hash))
        assert exc_info.value.status_code == 409

    def test_delete(self, store: UserStore, user: User) -> None:
        assert store.delete_user(user.id) is True
        assert store.get_user_by_id(user.id) is None
        assert store.delete_user(user.id) is False


class TestRefreshTokens:
    def test_collision_is_rejected(self, store: UserStore, user: User) -> None:
        expires = datetime.now(timezone.utc) + timedelta(days=1)
        first = _refresh_token(user.id, expires_at=expires, token="a" * 64)
        store.create_refresh_token(first)
        with pytest.raises(StoreUnavailableError):
            store.create_refresh_token(_refresh_token(uuid4(), expires_at=expires, token="a" * 64))
        assert store.get_refresh_token("a" * 64).user_id == user.id

    def test_owner_join(self, store: UserStore, user: User) -> None:
        rt = _refresh_token(user.id, expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        store.create_refresh_token(rt)
        assert store.get_user_for_refresh_token(rt.token).id == user.id
        assert store.get_user_for_refresh_token("b" * 64) is None

    def test_tokens_survive_user_deletion(self, store: UserStore, user: User) -> None:
        rt = _refresh_token(user.id, expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        store.create_refresh_token(rt)
        store.delete_user(user.id)
        assert store.get_refresh_token(rt.token) is not None
        assert store.get_user_for_refresh_token(rt.token) is None

    def test_revoke_unknown(self, store: UserStore) -> None:
        assert store.revoke_refresh_token("c" * 64, datetime.now(timezone.utc)) is False

    def test_purge_expired(self, store: UserStore, user: User) -> None:
        now = datetime.now(timezone.utc)
        expired = _refresh_token(user.id, expires_at=now - timedelta(seconds=1))
        live = _refresh_token(user.id, expires_at=now + timedelta(days=60))
        store.create_refresh_token(expired)
        store.create_refresh_token(live)

        assert store.purge_expired_refresh_tokens(now) == 1
        assert store.get_refresh_token(expired.token) is None
        assert store.get_refresh_token(live.token) is not None


class TestFailures:
    def test_driver_error_becomes_store_unavailable(self, store: UserStore) -> None:
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch.object(store.engine, "connect", side_effect=error):
            with pytest.raises(StoreUnavailableError):
                store.get_user_by_email("walt@example.com")

    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True
        error = OperationalError("SELECT 1", {}, Exception("unable to open database file"))
        with patch.object(store.engine, "connect", side_effect=error):
            assert store.ping() is False
