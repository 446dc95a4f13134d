"""Key-value preference store (notification toggles and polling markers)."""

from typing import Optional

from .local_store import get_connection, transaction


def get_str(key: str, default: Optional[str] = None) -> Optional[str]:
    """Read a string preference, or ``default`` if unset."""
    row = get_connection().execute(
        "SELECT value FROM preferences WHERE key = ?",
        (key,)
    ).fetchone()
    return row["value"] if row else default


def set_str(key: str, value: str) -> None:
    """Write a string preference (last writer wins)."""
    with transaction() as conn:
        conn.execute(
            """
            INSERT INTO preferences (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, value)
        )


def get_bool(key: str, default: bool = False) -> bool:
    value = get_str(key)
    if value is None:
        return default
    return value == "1"


def set_bool(key: str, value: bool) -> None:
    set_str(key, "1" if value else "0")
