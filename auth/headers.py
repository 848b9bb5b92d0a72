"""
auth/headers.py -- Credential extractor for the Authorization header.

Two schemes are recognised:
  Authorization: Bearer <token>   -- access tokens and refresh tokens
  Authorization: ApiKey <key>     -- service-to-service calls

Matching is a strict prefix check: the header must begin with the exact,
case-sensitive scheme label followed by whitespace. "bearer x", "Bearerx" and
"Token Bearer x" are all rejected with SchemeMismatchError.

When a request carries the header more than once, only the first value is
considered.

Layer rule: stdlib only (plus auth.errors).
"""

from __future__ import annotations

from collections.abc import Mapping

from auth.errors import HeaderAbsentError, HeaderEmptyError, SchemeMismatchError

AUTHORIZATION = "Authorization"
BEARER = "Bearer"
API_KEY = "ApiKey"


def _first_authorization_value(headers: Mapping) -> str:
    # Starlette Headers: case-insensitive and keeps repeated values in order.
    if hasattr(headers, "getlist"):
        values = headers.getlist(AUTHORIZATION)
    else:
        values = next((v for k, v in headers.items() if k.lower() == AUTHORIZATION.lower()), None)
        if isinstance(values, str):
            values = [values]
    if not values:
        raise HeaderAbsentError()
    return values[0]


def _extract(headers: Mapping, scheme: str) -> str:
    value = _first_authorization_value(headers).strip()
    if not value or value == scheme:
        raise HeaderEmptyError()
    if not value.startswith(scheme) or not value[len(scheme)].isspace():
        raise SchemeMismatchError(f"Authorization header does not use the {scheme} scheme.")
    credential = value[len(scheme) :].strip()
    if not credential:
        raise HeaderEmptyError()
    return credential


def get_bearer_token(headers: Mapping) -> str:
    """Return the token from 'Authorization: Bearer <token>'.

    Raises HeaderAbsentError (or its SchemeMismatchError subclass) when there
    is no bearer credential, HeaderEmptyError when the token is blank.
    """
    return _extract(headers, BEARER)


def get_api_key(headers: Mapping) -> str:
    """Return the key from 'Authorization: ApiKey <key>'. Same errors as get_bearer_token."""
    return _extract(headers, API_KEY)
