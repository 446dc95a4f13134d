"""SQLite persistence for event reminder alarms."""

import sqlite3
from datetime import timezone

from logger import logger
from ..local_store import get_connection, transaction
from ..models import AlarmRecord, ReminderOffset, parse_timestamp


def _to_row_time(alarm: AlarmRecord) -> str:
    return alarm.event_time.astimezone(timezone.utc).isoformat()


def _from_row(row: sqlite3.Row) -> AlarmRecord:
    return AlarmRecord(
        id=row["id"],
        event_id=row["event_id"],
        event_time=parse_timestamp(row["event_time"]),
        event_name=row["event_name"],
        offset=ReminderOffset(row["hours_before"]),
    )


def insert_alarm(alarm: AlarmRecord) -> int:
    """Persist a new alarm and return its local id.

    If a row for the same (event_id, offset) already exists it is overwritten
    instead, and its id is returned, so a repeated create acts as an update.
    """
    with transaction() as conn:
        try:
            cursor = conn.execute(
                """
                INSERT INTO event_alarms (event_id, event_time, event_name, hours_before)
                VALUES (?, ?, ?, ?)
                """,
                (alarm.event_id, _to_row_time(alarm), alarm.event_name, alarm.offset.hours_before)
            )
            alarm_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            row = conn.execute(
                "SELECT id FROM event_alarms WHERE event_id = ? AND hours_before = ?",
                (alarm.event_id, alarm.offset.hours_before)
            ).fetchone()
            alarm_id = row["id"]
            conn.execute(
                "UPDATE event_alarms SET event_time = ?, event_name = ? WHERE id = ?",
                (_to_row_time(alarm), alarm.event_name, alarm_id)
            )
            logger.debug(f"Alarm for {alarm.event_id} ({alarm.offset.name}) already stored, updated row {alarm_id}")

    alarm.id = alarm_id
    return alarm_id


def update_alarm(alarm: AlarmRecord) -> None:
    """Overwrite the stored name and time of an existing alarm."""
    if alarm.id is None:
        raise ValueError("Cannot update an alarm that has no id")

    with transaction() as conn:
        conn.execute(
            "UPDATE event_alarms SET event_time = ?, event_name = ? WHERE id = ?",
            (_to_row_time(alarm), alarm.event_name, alarm.id)
        )


def delete_alarm(alarm: AlarmRecord) -> None:
    """Remove an alarm row (no-op if it is already gone)."""
    with transaction() as conn:
        conn.execute("DELETE FROM event_alarms WHERE id = ?", (alarm.id,))


def get_all_alarms() -> list[AlarmRecord]:
    """Fetch every stored alarm, ordered by id."""
    rows = get_connection().execute(
        "SELECT * FROM event_alarms ORDER BY id"
    ).fetchall()
    return [_from_row(row) for row in rows]


def get_alarms_by_offset(offset: ReminderOffset) -> list[AlarmRecord]:
    """Fetch the stored alarms of one reminder offset."""
    rows = get_connection().execute(
        "SELECT * FROM event_alarms WHERE hours_before = ? ORDER BY id",
        (offset.hours_before,)
    ).fetchall()
    return [_from_row(row) for row in rows]
