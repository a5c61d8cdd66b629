"""
core/database.py -- Engine factory shared by auth/store.py and records/store.py.

Both stores talk to the same relational database. This module owns the
dialect-specific connection setup so the stores only see an Engine.

SQLite specifics (set per-connection because SQLite PRAGMAs are not inherited
by new connections from the pool):
  foreign_keys=ON  -- SQLite ships with FK enforcement off. Without it the
                      ON DELETE CASCADE / SET NULL rules are silently ignored.
  journal_mode=WAL -- readers proceed without blocking during writes.

MySQL gets a bounded QueuePool sized from
DB_POOL_SIZE and pre-ping so stale pooled connections are replaced.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreUnavailableError


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_store_engine(db_url: str, pool_size: int = 5) -> Engine:
    """Build an Engine for db_url with the connection setup the stores rely on."""
    if db_url.startswith("sqlite"):
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _set_sqlite_pragmas)
        return engine
    return create_engine(db_url, pool_size=pool_size, max_overflow=0, pool_pre_ping=True)


def ping(engine: Engine) -> None:
    """Run a trivial round trip. Raises StoreUnavailableError if the store is down."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(f"Data store unreachable: {exc.__class__.__name__}") from exc
