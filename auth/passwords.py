"""
auth/passwords.py -- Credential hasher and password login.

Security design decisions:
  bcrypt used directly (no passlib wrapper). The cost factor is a fixed
  module constant: every hash this service writes carries cost 10, and
  verification always uses the cost embedded in the stored hash, so raising
  the constant later does not break existing rows.

  bcrypt only reads the first 72 bytes of input and current releases refuse
  longer passwords outright. hash_password rejects them up front with
  PasswordTooLongError so callers get a domain error instead of a ValueError.

  verify_password distinguishes "wrong password" from "stored hash is
  garbage" so the two can be logged differently. Both are 401 at the HTTP
  layer (see auth/errors.py).

  _DUMMY_HASH enables timing equalization in authenticate_user() so response
  time does not reveal whether an email is registered.

Plaintext passwords are never logged.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import bcrypt

from auth.errors import EntropyUnavailableError, HashMalformedError, HashMismatchError, PasswordTooLongError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("chirpy.auth")

BCRYPT_COST = 10
_MAX_PASSWORD_BYTES = 72
# $2b$10$ followed by 22 salt and 31 digest characters in bcrypt base64.
_BCRYPT_HASH_RE = re.compile(r"^\$2[abxy]\$\d{2}\$[./A-Za-z0-9]{53}\Z")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash ($2b$<cost>$<salt+digest>) of the plaintext password.

    Raises:
        PasswordTooLongError:    plain encodes to more than 72 bytes.
        EntropyUnavailableError: the OS random source failed while drawing the salt.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _MAX_PASSWORD_BYTES:
        raise PasswordTooLongError()
    try:
        salt = bcrypt.gensalt(rounds=BCRYPT_COST)
    except OSError as exc:
        raise EntropyUnavailableError() from exc
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> None:
    """Check a plaintext password against a stored bcrypt hash.

    Returns None on success. bcrypt.checkpw compares digests in constant time.

    Raises:
        HashMismatchError:  the password does not match.
        HashMalformedError: hashed is not a bcrypt hash string. Checked before
                            the password, so it wins over an overlong password.
    """
    if not _BCRYPT_HASH_RE.match(hashed):
        raise HashMalformedError()
    encoded = plain.encode("utf-8")
    if len(encoded) > _MAX_PASSWORD_BYTES:
        # hash_password never stores such a password, so it cannot match.
        raise HashMismatchError()
    try:
        matched = bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError as exc:
        raise HashMalformedError() from exc
    if not matched:
        raise HashMismatchError()


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("chirpy_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH, then HashMismatchError.
    - Wrong password: bcrypt runs against the real hash, HashMismatchError.

    The caller cannot tell the two apart, which is the point.
    """
    user = store.get_user_by_email(email)
    if user is None:
        try:
            verify_password(password, _DUMMY_HASH)
        except HashMismatchError:
            pass
        raise HashMismatchError()
    try:
        verify_password(password, user.hashed_password)
    except HashMalformedError:
        logger.error("Stored password hash for user %s is malformed", user.id)
        raise
    return user
