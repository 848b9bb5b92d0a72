"""
api/routes/v1/users.py -- Account creation and service-side deletion.

Routes:
  POST   /api/v1/users             -- public sign-up; hashes the password
  DELETE /api/v1/users/{user_id}   -- Authorization: ApiKey <key> required

Deleting a user does not touch their refresh tokens or outstanding access
tokens. Access tokens stay valid until expiry (stateless); refresh attempts
fail with OwnerNotFoundError.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response

from api.models import UserCreate, UserResponse
from auth.dependencies import get_user_store, require_api_key
from auth.models import User
from auth.passwords import hash_password
from auth.store import UserStore

logger = logging.getLogger("chirpy.api")

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(body: UserCreate, store: UserStore = Depends(get_user_store)) -> UserResponse:
    """Create an account. Raises DuplicateEmailError (409) if the email is taken."""
    user = User(email=body.email, hashed_password=hash_password(body.password))
    store.create_user(user)
    logger.info("Created user %s", user.id)
    return UserResponse(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.delete("/users/{user_id}", status_code=204, dependencies=[Depends(require_api_key)])
def delete_user(user_id: UUID, store: UserStore = Depends(get_user_store)) -> Response:
    """Delete an account. Service-to-service only."""
    if not store.delete_user(user_id):
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    logger.info("Deleted user %s", user_id)
    return Response(status_code=204)
