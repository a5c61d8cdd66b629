"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as records/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Last-admin protection:
  update_role() and delete_user() run the whole read-check-write sequence in
  one transaction. The target row is touched with a no-op UPDATE first so the
  transaction holds the write lock before anything is read (SQLite defers
  locking until the first write; MySQL locks the row). The
  remaining-admin lookup is a locking read (FOR UPDATE where the dialect has
  it), so two concurrent demotions of two different admins serialize instead
  of both succeeding.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from core.config import get_settings
from core.database import create_store_engine, ping
from core.errors import ConflictError, LastAdminError, NotFoundError

logger = logging.getLogger("afms.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("hashed_password", String(255), nullable=False),
    Column("role", String(10), nullable=False, server_default=Role.user.value),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        store.create_user(User(username="admin", role="admin", hashed_password=hash_password("secret")))
        user = store.get_by_username("admin")
        store.close()
    """

    def __init__(self, db_url: str | None = None, pool_size: int = 5) -> None:
        self.engine: Engine = create_store_engine(db_url or get_settings().database_url, pool_size)
        _metadata.create_all(self.engine)

    def ping(self) -> None:
        ping(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, newest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at.desc(), _users.c.id.desc())).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_by_role(self, role: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users).where(_users.c.role == role)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises ConflictError if the username already exists. The UNIQUE
        constraint is the source of truth, so two concurrent registrations of
        the same name cannot both succeed.
        """
        try:
            with self.engine.begin() as conn:
                return self._insert(conn, user)
        except IntegrityError as exc:
            raise ConflictError("Username already exists") from exc

    def create_default_accounts(self, accounts: list[User]) -> list[str]:
        """Bootstrap accounts for a fresh install. Returns the usernames created.

        Allowed only while no admin exists -- once setup has produced an admin
        the endpoint is closed. Accounts whose username is already taken (for
        example by an earlier self-registration) are skipped.
        """
        created: list[str] = []
        try:
            with self.engine.begin() as conn:
                admins = conn.execute(
                    select(func.count()).select_from(_users).where(_users.c.role == Role.admin.value)
                ).scalar()
                if admins:
                    raise ConflictError("Setup has already been completed", code="setup_completed")
                for account in accounts:
                    exists = conn.execute(
                        select(_users.c.id).where(_users.c.username == account.username)
                    ).first()
                    if exists is not None:
                        continue
                    self._insert(conn, account)
                    created.append(account.username)
        except IntegrityError as exc:
            # A concurrent setup request inserted the same usernames first.
            raise ConflictError("Setup has already been completed", code="setup_completed") from exc
        return created

    def update_role(self, user_id: int, role: str) -> None:
        """Change a user's role. Raises NotFoundError or LastAdminError."""
        with self.engine.begin() as conn:
            prior = self._lock_target(conn, user_id)
            if prior == Role.admin.value and role != Role.admin.value:
                self._guard_last_admin(conn, user_id, "Cannot remove the last admin user")
            conn.execute(_users.update().where(_users.c.id == user_id).values(role=role))
        logger.info("User %d role set to %s", user_id, role)

    def delete_user(self, user_id: int) -> None:
        """Permanently delete a user. Raises NotFoundError or LastAdminError."""
        with self.engine.begin() as conn:
            prior = self._lock_target(conn, user_id)
            if prior == Role.admin.value:
                self._guard_last_admin(conn, user_id, "Cannot delete the last admin user")
            conn.execute(_users.delete().where(_users.c.id == user_id))
        logger.info("User %d deleted", user_id)

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _insert(conn: Connection, user: User) -> int:
        result = conn.execute(
            _users.insert().values(
                username=user.username,
                hashed_password=user.hashed_password,
                role=user.role,
                created_at=_now_iso(),
            )
        )
        return result.inserted_primary_key[0]

    @staticmethod
    def _lock_target(conn: Connection, user_id: int) -> str:
        """Take the write lock on the target row and return its current role."""
        touched = conn.execute(_users.update().where(_users.c.id == user_id).values(role=_users.c.role))
        if touched.rowcount == 0:
            raise NotFoundError("User not found")
        return conn.execute(select(_users.c.role).where(_users.c.id == user_id)).scalar_one()

    @staticmethod
    def _guard_last_admin(conn: Connection, user_id: int, message: str) -> None:
        """Raise LastAdminError unless another admin besides user_id exists."""
        other = conn.execute(
            select(_users.c.id)
            .where((_users.c.role == Role.admin.value) & (_users.c.id != user_id))
            .limit(1)
            .with_for_update()
        ).first()
        if other is None:
            raise LastAdminError(message)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=row.role,
        created_at=row.created_at,
    )
