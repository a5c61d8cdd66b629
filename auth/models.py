"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in records/models.py -- dataclasses own domain shape; stores and routes do
the work.

Roles are a closed enumeration. Endpoint policy is a set-membership test
against these two values, never a hierarchy:

    READ_ROLES  = {admin, user}   -- every retrieval endpoint
    WRITE_ROLES = {admin}         -- every create/update/delete endpoint

Layer rule: no imports from api/, records/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    admin = "admin"
    user = "user"


READ_ROLES: frozenset[Role] = frozenset({Role.admin, Role.user})
WRITE_ROLES: frozenset[Role] = frozenset({Role.admin})


@dataclass
class User:
    """A stored account.

    hashed_password is a bcrypt digest and never leaves the auth layer --
    API response models do not carry it.
    """

    username: str
    hashed_password: str
    role: str = Role.user.value
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, decoded from a verified token.

    Immutable and self-contained: the gate never re-reads the users table,
    so a role change takes effect only once the caller logs in again.
    """

    user_id: int
    username: str
    role: str
    issued_at: datetime
