"""
auth/refresh.py -- Refresh token lifecycle manager.

State machine per refresh token:

    Active --(now >= expires_at)--> Expired
    Active --(revoke)-------------> Revoked

Both Expired and Revoked are terminal. When both conditions hold, Expired is
reported first so the outcome is deterministic.

Tokens are not rotated on use: the same refresh token keeps minting access
tokens until it expires or is revoked.

Persistence, uniqueness and atomic revoke are delegated to the store; this
class holds no mutable state of its own and is safe to share across request
threads.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import UUID

from auth.errors import OwnerNotFoundError, TokenExpiredError, TokenNotFoundError, TokenRevokedError
from auth.models import RefreshToken
from auth.store import UserStore
from auth.tokens import make_refresh_token

logger = logging.getLogger("chirpy.auth")

DEFAULT_REFRESH_LIFETIME = timedelta(days=60)


class RefreshTokenState(str, Enum):
    active = "active"
    expired = "expired"
    revoked = "revoked"


class RefreshTokenManager:
    """Issue, look up, check and revoke refresh tokens.

    Usage:
        manager = RefreshTokenManager(store)
        rt = manager.create(user.id)
        user_id = manager.resolve(rt.token)   # refresh flow
        manager.revoke(rt.token)              # logout
    """

    def __init__(self, store: UserStore, lifetime: timedelta = DEFAULT_REFRESH_LIFETIME) -> None:
        if lifetime <= timedelta(0):
            raise ValueError("Refresh token lifetime must be positive.")
        self.store = store
        self.lifetime = lifetime

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def create(self, user_id: UUID) -> RefreshToken:
        """Generate and persist a new active refresh token for user_id."""
        now = self._now()
        refresh_token = RefreshToken(
            token=make_refresh_token(),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            expires_at=now + self.lifetime,
        )
        self.store.create_refresh_token(refresh_token)
        return refresh_token

    def lookup(self, token: str) -> RefreshToken:
        refresh_token = self.store.get_refresh_token(token)
        if refresh_token is None:
            raise TokenNotFoundError()
        return refresh_token

    def state(self, refresh_token: RefreshToken, now: datetime | None = None) -> RefreshTokenState:
        """Return the token's position in the state machine at now (default: current time).

        A naive now is taken to be UTC.
        """
        now = now or self._now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if now >= refresh_token.expires_at:
            return RefreshTokenState.expired
        if refresh_token.revoked_at is not None:
            return RefreshTokenState.revoked
        return RefreshTokenState.active

    def check_usable(self, refresh_token: RefreshToken, now: datetime | None = None) -> None:
        """Raise TokenExpiredError or TokenRevokedError unless the token is active."""
        state = self.state(refresh_token, now)
        if state is RefreshTokenState.expired:
            raise TokenExpiredError("Refresh token has expired.")
        if state is RefreshTokenState.revoked:
            raise TokenRevokedError()

    def revoke(self, token: str) -> None:
        """Revoke token. Revoking an already-revoked token is not an error.

        Raises TokenNotFoundError if no such token exists.
        """
        if not self.store.revoke_refresh_token(token, self._now()):
            raise TokenNotFoundError()
        logger.info("Refresh token revoked")

    def identity_for(self, refresh_token: RefreshToken) -> UUID:
        """Return the ID of the user owning refresh_token.

        Raises OwnerNotFoundError if the user has been deleted since issuance.
        """
        user = self.store.get_user_for_refresh_token(refresh_token.token)
        if user is None:
            raise OwnerNotFoundError()
        return user.id

    def resolve(self, token: str) -> UUID:
        """Full refresh-flow check: lookup, check_usable, identity_for."""
        refresh_token = self.lookup(token)
        self.check_usable(refresh_token)
        return self.identity_for(refresh_token)
