"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_refresh_token are the mappers. Route and core code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Consistency:
  Every write is a single-row statement committed on its own connection, so
  create and revoke are atomic without explicit transactions.
  revoke_refresh_token() uses COALESCE so revoked_at is written at most once;
  a second revoke only bumps updated_at.

  refresh_tokens.user_id has no foreign key: deleting a user
  leaves their refresh tokens in place, and the refresh flow reports
  OwnerNotFoundError for them.

Timestamps are ISO 8601 UTC strings with fixed microsecond precision so
lexical order equals chronological order (purge relies on this).

Errors:
  Any SQLAlchemyError is translated into StoreUnavailableError; a duplicate
  email into DuplicateEmailError.

DB path: auth/chirpy_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateEmailError, StoreUnavailableError
from auth.models import RefreshToken, User

logger = logging.getLogger("chirpy.store")

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'chirpy_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # str(UUID)
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("token", String(64), primary_key=True),  # 64 hex chars
    Column("user_id", String(36), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False, index=True),
    Column("revoked_at", String(32)),  # NULL = not revoked
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and RefreshToken entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(email="a@example.com", hashed_password=hash_password("secret")))
        user = store.get_user_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a connection; translate driver failures into StoreUnavailableError.

        IntegrityError passes through untouched so callers can map constraint
        violations to their own domain errors.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Credential store error: %s", exc.__class__.__name__)
            raise StoreUnavailableError() from exc

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StoreUnavailableError:
            return False
        return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> UUID:
        """Insert a new user and return its ID.

        created_at/updated_at are stamped here and written back onto user.
        Raises DuplicateEmailError if the email is already registered.
        """
        now = _now()
        try:
            with self._connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=str(user.id),
                        email=user.email,
                        hashed_password=user.hashed_password,
                        created_at=_to_iso(now),
                        updated_at=_to_iso(now),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc
        user.created_at = now
        user.updated_at = now
        return user.id

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: UUID) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    def delete_user(self, user_id: UUID) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Refresh tokens owned by the user are left in place (orphaned).
        """
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == str(user_id)))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def create_refresh_token(self, refresh_token: RefreshToken) -> None:
        """Insert a refresh token row.

        A primary-key collision is rejected rather than overwriting the
        existing row.
        """
        try:
            with self._connect() as conn:
                conn.execute(
                    _refresh_tokens.insert().values(
                        token=refresh_token.token,
                        user_id=str(refresh_token.user_id),
                        created_at=_to_iso(refresh_token.created_at),
                        updated_at=_to_iso(refresh_token.updated_at),
                        expires_at=_to_iso(refresh_token.expires_at),
                        revoked_at=_to_iso(refresh_token.revoked_at) if refresh_token.revoked_at else None,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.error("Refresh token insert rejected by a uniqueness constraint")
            raise StoreUnavailableError("Refresh token could not be stored.") from exc

    def get_refresh_token(self, token: str) -> RefreshToken | None:
        """Fetch a refresh token by exact value. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def revoke_refresh_token(self, token: str, when: datetime) -> bool:
        """Mark a refresh token revoked. Returns True if the token exists.

        revoked_at keeps its first value on repeat calls; updated_at always
        moves to when.
        """
        stamp = _to_iso(when)
        with self._connect() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where(_refresh_tokens.c.token == token)
                .values(revoked_at=func.coalesce(_refresh_tokens.c.revoked_at, stamp), updated_at=stamp)
            )
            conn.commit()
        return result.rowcount > 0

    def get_user_for_refresh_token(self, token: str) -> User | None:
        """Return the user owning token, or None if the token or its owner is gone."""
        query = (
            select(_users)
            .select_from(_refresh_tokens.join(_users, _users.c.id == _refresh_tokens.c.user_id))
            .where(_refresh_tokens.c.token == token)
        )
        with self._connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_user(row) if row is not None else None

    def purge_expired_refresh_tokens(self, now: datetime | None = None) -> int:
        """Delete refresh tokens whose expiry has passed. Returns number of rows removed."""
        cutoff = _to_iso(now or _now())
        with self._connect() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.expires_at <= cutoff))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=UUID(row.id),
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        token=row.token,
        user_id=UUID(row.user_id),
        created_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
        expires_at=_from_iso(row.expires_at),
        revoked_at=_from_iso(row.revoked_at),
    )
