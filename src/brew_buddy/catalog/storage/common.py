"""SQLite connection policy and timestamp helpers for the catalog store.

Every connection, whether opened through the SQLAlchemy engine or directly
with ``sqlite3``, runs in WAL mode so readers (search, list) never block the
sweep writer, and waits up to the busy timeout when another writer holds the
lock.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

DEFAULT_BUSY_TIMEOUT_MS = 5000


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def to_db_datetime(value: datetime) -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""

    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def to_utc_aware_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def build_sqlite_engine(*, db_path: Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> Engine:
    """Engine without pooling; each session gets a fresh connection with the policy applied."""

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": busy_timeout_ms / 1000.0},
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: sqlite3.Connection, _record: object) -> None:
        _apply_policy(dbapi_connection, busy_timeout_ms=busy_timeout_ms)

    return engine


def connect_sqlite_with_policy(
    *,
    db_path: Path,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    connection = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000.0)
    _apply_policy(connection, busy_timeout_ms=busy_timeout_ms)
    connection.row_factory = sqlite3.Row
    return connection


def _apply_policy(connection: sqlite3.Connection, *, busy_timeout_ms: int) -> None:
    statements = (
        "PRAGMA journal_mode = WAL",
        f"PRAGMA busy_timeout = {max(1, int(busy_timeout_ms))}",
        "PRAGMA foreign_keys = ON",
    )
    cursor = connection.cursor()
    try:
        for statement in statements:
            cursor.execute(statement)
    finally:
        cursor.close()
