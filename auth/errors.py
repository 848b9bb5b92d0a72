"""
auth/errors.py -- Exception taxonomy for the credential and session-token core.

Every failure the core can produce has its own class so callers can log the
precise reason. Each class carries two attributes:

  code:        specific, stable identifier (e.g. "token_expired"). Written to
               server logs only.
  status_code: HTTP status the API layer maps the failure to.

Authentication failures all share status 401 and are rendered to clients as
the same generic "unauthorized" response -- a client must never learn which
check failed (expired vs revoked vs bad signature). public_code() performs
that collapse.

Layer rule: stdlib only.
"""

from __future__ import annotations

_PUBLIC_CODES = {
    401: "unauthorized",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    500: "internal_error",
    503: "service_unavailable",
}


class AuthError(Exception):
    """Base class for every error raised by the auth core."""

    code: str = "unauthorized"
    status_code: int = 401
    default_message: str = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def public_code(self) -> str:
        """Client-facing error code. Never more specific than the status class."""
        return _PUBLIC_CODES.get(self.status_code, "error")


# ---------------------------------------------------------------------------
# Credential hasher
# ---------------------------------------------------------------------------


class HashMismatchError(AuthError):
    code = "hash_mismatch"
    default_message = "Password does not match."


class HashMalformedError(AuthError):
    code = "hash_malformed"
    default_message = "Stored credential hash is malformed."


class PasswordTooLongError(AuthError):
    """bcrypt only consumes the first 72 bytes of input."""

    code = "password_too_long"
    status_code = 422
    default_message = "Password must be at most 72 bytes."


class EntropyUnavailableError(AuthError):
    code = "entropy_unavailable"
    status_code = 500
    default_message = "Secure random source unavailable."


# ---------------------------------------------------------------------------
# Access token codec
# ---------------------------------------------------------------------------


class TokenSigningError(AuthError):
    code = "token_signing_failed"
    status_code = 500
    default_message = "Could not sign access token."


class SignatureInvalidError(AuthError):
    code = "signature_invalid"
    default_message = "Token signature is invalid."


class TokenMalformedError(AuthError):
    code = "token_malformed"
    default_message = "Token is malformed."


class TokenExpiredError(AuthError):
    code = "token_expired"
    default_message = "Token has expired."


class SubjectInvalidError(AuthError):
    code = "subject_invalid"
    default_message = "Token subject is not a valid user ID."


# ---------------------------------------------------------------------------
# Credential extractor
# ---------------------------------------------------------------------------


class HeaderAbsentError(AuthError):
    code = "header_absent"
    default_message = "Authorization header is missing."


class SchemeMismatchError(HeaderAbsentError):
    """The Authorization header exists but carries a different scheme."""

    code = "scheme_mismatch"
    default_message = "Authorization header uses an unexpected scheme."


class HeaderEmptyError(AuthError):
    code = "header_empty"
    default_message = "Authorization credential is empty."


class ApiKeyInvalidError(AuthError):
    code = "api_key_invalid"
    default_message = "API key is invalid."


# ---------------------------------------------------------------------------
# Refresh token lifecycle
# ---------------------------------------------------------------------------


class TokenNotFoundError(AuthError):
    code = "token_not_found"
    default_message = "Refresh token not found."


class TokenRevokedError(AuthError):
    code = "token_revoked"
    default_message = "Refresh token has been revoked."


class OwnerNotFoundError(AuthError):
    code = "owner_not_found"
    default_message = "Token owner no longer exists."


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StoreUnavailableError(AuthError):
    code = "store_unavailable"
    status_code = 503
    default_message = "Credential store is unavailable."


class DuplicateEmailError(AuthError):
    code = "duplicate_email"
    status_code = 409
    default_message = "A user with that email already exists."

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__()
