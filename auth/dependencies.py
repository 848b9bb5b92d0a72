"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two credential types are accepted, both via the Authorization header:
  1. Bearer <access token>  -- require_user_id() / get_current_user()
  2. ApiKey <key>           -- require_api_key(), service-to-service calls

Refresh and revoke routes read the raw bearer value with bearer_token() and
hand it to the RefreshTokenManager instead of the JWT codec.

Failures are raised as AuthError subclasses, never HTTPException. The API
layer's exception handler logs the specific code and replies with a generic
401 so clients cannot tell which check failed.

Shared objects live on app.state and are wired up once in the lifespan:
  app.state.settings        -- core.config.Settings
  app.state.user_store      -- auth.store.UserStore
  app.state.refresh_tokens  -- auth.refresh.RefreshTokenManager

Layer rule: no imports from api/. core.config is the only core/ import.
Importing fastapi is allowed here because this module is part of the FastAPI
dependency injection system.
"""

from __future__ import annotations

import hmac
from uuid import UUID

from fastapi import Depends, Request

from auth.errors import ApiKeyInvalidError, OwnerNotFoundError
from auth.headers import get_api_key, get_bearer_token
from auth.models import User
from auth.refresh import RefreshTokenManager
from auth.store import UserStore
from auth.tokens import validate_access_token
from core.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_refresh_manager(request: Request) -> RefreshTokenManager:
    return request.app.state.refresh_tokens


def bearer_token(request: Request) -> str:
    """Return the raw 'Authorization: Bearer' value (access or refresh token)."""
    return get_bearer_token(request.headers)


def require_user_id(
    token: str = Depends(bearer_token),
    settings: Settings = Depends(get_settings),
) -> UUID:
    """Validate the bearer access token and return its subject.

    Stateless: the user is not looked up. Use get_current_user() when the
    route needs the account record.
    """
    return validate_access_token(token, settings.secret_key)


def get_current_user(
    user_id: UUID = Depends(require_user_id),
    store: UserStore = Depends(get_user_store),
) -> User:
    """Require a valid access token whose user still exists."""
    user = store.get_user_by_id(user_id)
    if user is None:
        raise OwnerNotFoundError()
    return user


def require_api_key(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Require 'Authorization: ApiKey <key>' matching the configured API_KEY.

    An unconfigured API_KEY rejects every request. Comparison is constant-time.
    """
    key = get_api_key(request.headers)
    if not settings.api_key or not hmac.compare_digest(key.encode("utf-8"), settings.api_key.encode("utf-8")):
        raise ApiKeyInvalidError()
