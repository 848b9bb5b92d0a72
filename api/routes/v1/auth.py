"""
api/routes/v1/auth.py -- Login, token refresh, revocation and identity endpoints.

Routes:
  POST /api/v1/auth/login    -- email/password login; returns access + refresh token
  POST /api/v1/auth/refresh  -- Bearer <refresh token>; returns a new access token
  POST /api/v1/auth/revoke   -- Bearer <refresh token>; revokes it (logout)
  GET  /api/v1/auth/me       -- Bearer <access token>; current user

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_user_by_email() + verify_password().
  Every AuthError raised here (or in a dependency) is rendered by the app's
  exception handler as a generic 401; the specific reason is only logged.
  Cache-Control: no-store on every response carrying a token.

Handlers are plain def (not async): bcrypt and the SQLite store block, so
FastAPI runs them in its threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, RefreshResponse, UserResponse
from auth.dependencies import bearer_token, get_current_user, get_refresh_manager, get_settings, get_user_store
from auth.models import User
from auth.passwords import authenticate_user
from auth.refresh import RefreshTokenManager
from auth.store import UserStore
from auth.tokens import create_access_token
from core.config import Settings

logger = logging.getLogger("chirpy.api")

# Auth policy:
# - POST /api/v1/auth/login:    public -- the login endpoint must be unauthenticated
# - POST /api/v1/auth/refresh:  requires a usable refresh token
# - POST /api/v1/auth/revoke:   requires an existing refresh token (revoked is fine)
# - GET  /api/v1/auth/me:       requires a valid access token
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    store: UserStore = Depends(get_user_store),
    refresh_tokens: RefreshTokenManager = Depends(get_refresh_manager),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Authenticate with email and password; issue an access token and a refresh token."""
    user = authenticate_user(store, body.email, body.password)
    token = create_access_token(user.id, settings.secret_key, settings.access_token_lifetime)
    refresh_token = refresh_tokens.create(user.id)
    logger.info("User %s logged in", user.id)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            id=user.id,
            email=user.email,
            created_at=user.created_at,
            updated_at=user.updated_at,
            token=token,
            refresh_token=refresh_token.token,
            expires_in=settings.access_token_expire_seconds,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/refresh", response_model=RefreshResponse)
def refresh(
    token: str = Depends(bearer_token),
    refresh_tokens: RefreshTokenManager = Depends(get_refresh_manager),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Mint a new access token from a refresh token. The refresh token itself is not rotated."""
    user_id = refresh_tokens.resolve(token)
    access_token = create_access_token(user_id, settings.secret_key, settings.access_token_lifetime)
    resp = JSONResponse(
        status_code=200,
        content=RefreshResponse(
            token=access_token,
            expires_in=settings.access_token_expire_seconds,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/revoke", status_code=204)
def revoke(
    token: str = Depends(bearer_token),
    refresh_tokens: RefreshTokenManager = Depends(get_refresh_manager),
) -> Response:
    """Revoke a refresh token. Idempotent for tokens that are already revoked."""
    refresh_tokens.revoke(token)
    return Response(status_code=204)


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the account behind the presented access token."""
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        created_at=current_user.created_at,
        updated_at=current_user.updated_at,
    )
