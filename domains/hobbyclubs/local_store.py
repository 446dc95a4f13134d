"""Local SQLite database shared by the alarm table and the preference table.

One WAL-mode connection per process, created lazily from ``config.LOCAL_DB``.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from logger import logger
from . import config


# Module-level connection (reused for performance)
_connection: Optional[sqlite3.Connection] = None


def get_connection() -> sqlite3.Connection:
    """Get or create database connection with WAL mode."""
    global _connection

    if _connection is not None:
        return _connection

    db_path = Path(config.LOCAL_DB)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _connection = sqlite3.connect(
        config.LOCAL_DB,
        check_same_thread=False,
        timeout=10.0
    )
    _connection.row_factory = sqlite3.Row

    _connection.execute("PRAGMA journal_mode=WAL")
    _connection.execute("PRAGMA busy_timeout=5000")

    _init_schema(_connection)

    logger.info(f"Local store initialized: {config.LOCAL_DB}")
    return _connection


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create tables if they don't exist."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS event_alarms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id TEXT NOT NULL,
            event_time TEXT NOT NULL,
            event_name TEXT NOT NULL,
            hours_before INTEGER NOT NULL,
            UNIQUE (event_id, hours_before)
        );

        CREATE INDEX IF NOT EXISTS idx_alarms_hours ON event_alarms(hours_before);

        CREATE TABLE IF NOT EXISTS preferences (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
    """)
    conn.commit()


@contextmanager
def transaction():
    """Context manager for database transactions."""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def close() -> None:
    """Close the database connection."""
    global _connection
    if _connection:
        _connection.close()
        _connection = None
        logger.debug("Local store connection closed")
