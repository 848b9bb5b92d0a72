"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store maps rows
to these; refresh.py and the route layer do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


@dataclass
class User:
    """An account identity.

    id is generated once at account creation and never changes. Access token
    subjects are str(id).

    hashed_password is the bcrypt string produced by auth.passwords.hash_password.
    It is owned by the store and never decoded.
    """

    email: str
    hashed_password: str
    id: UUID = field(default_factory=uuid4)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RefreshToken:
    """A long-lived opaque session token bound to exactly one user.

    token is the 64-char hex value handed to the client and doubles as the
    primary key. revoked_at is None while the token is active; once set it is
    never cleared.
    """

    token: str
    user_id: UUID
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
