"""
auth/tokens.py -- Access token codec and refresh token generator.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry iss ("chirpy"), sub (user UUID),
       iat and exp -- nothing else. The signing secret and lifetime are passed
       in by the caller on every call; this module holds no configuration.

       Validation is stateless: it never consults a store. The consequence is
       that an access token stays valid until its natural expiry even if the
       user is deleted or logs out. Revocation only applies to refresh tokens.

       The library already rejects expired tokens; validate_access_token()
       re-checks exp explicitly anyway so a change in library defaults (or a
       leeway option) can never quietly extend a token's life.

  Refresh tokens: secrets.token_hex(32) gives 256 bits of entropy. Guessing
       and birthday collisions are both infeasible, so no uniqueness probe is
       made before insert (the store's primary key still rejects a collision).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import (
    EntropyUnavailableError,
    SignatureInvalidError,
    SubjectInvalidError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSigningError,
)

logger = logging.getLogger("chirpy.auth")

ISSUER = "chirpy"
_ALGORITHM = "HS256"
_REFRESH_TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Access tokens (JWT)
# ---------------------------------------------------------------------------


def create_access_token(user_id: UUID, secret: str, expires_in: timedelta) -> str:
    """Encode a signed JWT asserting user_id for expires_in.

    iat and exp are whole seconds (JWT NumericDate) taken from the same clock
    reading, so exp - iat is exactly the requested lifetime.

    Raises:
        ValueError:        expires_in is not positive.
        TokenSigningError: signing failed (e.g. empty secret).
    """
    lifetime = int(expires_in.total_seconds())
    if lifetime <= 0:
        raise ValueError("Access token lifetime must be at least one second.")
    if not secret:
        raise TokenSigningError("Signing secret must not be empty.")

    issued_at = int(_utcnow().timestamp())
    claims = {
        "iss": ISSUER,
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    try:
        return jwt.encode(claims, secret, algorithm=_ALGORITHM)
    except JWTError as exc:
        raise TokenSigningError() from exc


def validate_access_token(token: str, secret: str) -> UUID:
    """Verify a JWT and return the user ID it asserts.

    Checks run in this order; the first failure wins:
      1. TokenMalformedError   -- not a JWT, or claims are not a JSON object
      2. SignatureInvalidError -- MAC does not verify against secret
      3. TokenExpiredError     -- exp is in the past
      4. TokenMalformedError   -- wrong issuer, bad iat, or no exp claim
      5. SubjectInvalidError   -- sub missing or not a UUID
    """
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise TokenMalformedError() from exc

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            issuer=ISSUER,
            # sub is checked below so a non-string subject is SubjectInvalidError.
            options={"verify_sub": False},
        )
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except JWTClaimsError as exc:
        raise TokenMalformedError(str(exc)) from exc
    except JWTError as exc:
        raise SignatureInvalidError() from exc

    expires_at = claims.get("exp")
    if not isinstance(expires_at, (int, float)):
        raise TokenMalformedError("Token has no expiry.")
    if expires_at < _utcnow().timestamp():
        raise TokenExpiredError()

    subject = claims.get("sub")
    if not isinstance(subject, str):
        raise SubjectInvalidError()
    try:
        return UUID(subject)
    except ValueError as exc:
        raise SubjectInvalidError() from exc


# ---------------------------------------------------------------------------
# Refresh token generation
# ---------------------------------------------------------------------------


def make_refresh_token() -> str:
    """Return 256 random bits as 64 lowercase hex characters.

    A failing OS random source is surfaced as EntropyUnavailableError. There is no
    fallback to a weaker generator.
    """
    try:
        return secrets.token_hex(_REFRESH_TOKEN_BYTES)
    except OSError as exc:
        logger.error("OS random source failed while generating a refresh token")
        raise EntropyUnavailableError() from exc
