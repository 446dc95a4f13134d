"""Keep local reminder alarms in step with the user's relevant remote events.

A resync pass:
1. Sweeps alarms of reminder offsets that are switched off
2. Fetches all events; a failed fetch abandons the pass
3. Keeps the events starting now or later that the user joined or liked
4. Per enabled offset, diffs them against the stored alarms and applies
   deletes, then creates, then updates
5. Arms a wake for any stored alarm that has none, since wakes live only
   in the scheduler's memory and are gone after a restart

Every store write and wake call for an alarm goes through the _apply_*
functions below, which run without awaiting, so two passes never interleave
writes to the same row. Failures on one row are logged and the batch goes on.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from logger import logger
from .. import config, preferences, remote_store
from ..models import AlarmRecord, Event, ReminderOffset
from ..remote_store import RemoteStoreError
from . import store as alarm_store
from .scheduler import WakeScheduler, alarm_key, schedule_alarm, cancel_alarm


@dataclass
class ResyncPlan:
    """Alarm changes for one reminder offset."""
    offset: ReminderOffset
    to_delete: list[AlarmRecord] = field(default_factory=list)
    to_create: list[AlarmRecord] = field(default_factory=list)
    to_update: list[AlarmRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_delete or self.to_create or self.to_update)


@dataclass
class ResyncResult:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    rearmed: int = 0
    aborted: bool = False

    @property
    def changed(self) -> int:
        return self.created + self.updated + self.deleted


def get_enabled_offsets() -> list[ReminderOffset]:
    """Reminder offsets whose setting is currently switched on."""
    return [offset for offset in ReminderOffset if preferences.get_bool(offset.setting.name)]


def find_relevant_events(events: list[Event], uid: str, now: datetime) -> dict[str, Event]:
    """Events starting at or after ``now`` that ``uid`` participates in or likes.

    Returns:
        Dict of event id -> event, in start order
    """
    relevant = {}
    for event in sorted(events, key=lambda e: e.date):
        if event.date < now:
            continue
        if uid in event.participants or uid in event.likers:
            relevant[event.id] = event
    return relevant


def plan_offset(
    relevant: dict[str, Event],
    alarms: list[AlarmRecord],
    offset: ReminderOffset
) -> ResyncPlan:
    """Diff relevant events against the stored alarms of one offset."""
    plan = ResyncPlan(offset=offset)
    kept: dict[str, AlarmRecord] = {}

    for alarm in alarms:
        if alarm.offset is not offset:
            continue
        # A second row for the same event is a leftover and goes too
        if alarm.event_id not in relevant or alarm.event_id in kept:
            plan.to_delete.append(alarm)
        else:
            kept[alarm.event_id] = alarm

    for event_id, event in relevant.items():
        alarm = kept.get(event_id)
        if alarm is None:
            plan.to_create.append(AlarmRecord(
                event_id=event.id,
                event_time=event.date,
                event_name=event.name,
                offset=offset,
            ))
        elif alarm.event_name != event.name or alarm.event_time != event.date:
            plan.to_update.append(AlarmRecord(
                id=alarm.id,
                event_id=event.id,
                event_time=event.date,
                event_name=event.name,
                offset=offset,
            ))

    plan.to_update.sort(key=lambda a: a.id)
    return plan


def plan_resync(
    relevant: dict[str, Event],
    alarms: list[AlarmRecord],
    offsets: list[ReminderOffset]
) -> list[ResyncPlan]:
    return [plan_offset(relevant, alarms, offset) for offset in offsets]


def _parse_events(rows: list[dict]) -> list[Event]:
    events = []
    for row in rows:
        try:
            events.append(Event.from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed event row {row.get('id')}: {e}")
    return events


def _apply_delete(wake_scheduler: WakeScheduler, alarm: AlarmRecord, result: ResyncResult) -> None:
    try:
        cancel_alarm(wake_scheduler, alarm)
    except Exception as e:
        logger.error(f"Failed to cancel wake for alarm {alarm.id} ({alarm.event_name}): {e}")
        result.failed += 1
        return

    try:
        alarm_store.delete_alarm(alarm)
    except sqlite3.Error as e:
        logger.error(f"Failed to delete alarm {alarm.id} ({alarm.event_name}): {e}")
        result.failed += 1
        return

    result.deleted += 1
    logger.info(f"Deleted {alarm.offset.name} alarm for '{alarm.event_name}'")


def _apply_create(wake_scheduler: WakeScheduler, alarm: AlarmRecord, result: ResyncResult) -> None:
    try:
        alarm_store.insert_alarm(alarm)
    except sqlite3.Error as e:
        logger.error(f"Failed to store alarm for event {alarm.event_id}: {e}")
        result.failed += 1
        return

    try:
        schedule_alarm(wake_scheduler, alarm)
    except Exception as e:
        logger.error(f"Failed to schedule alarm {alarm.id} for '{alarm.event_name}': {e}")
        result.failed += 1
        # Drop the row so the next resync creates it again
        try:
            alarm_store.delete_alarm(alarm)
        except sqlite3.Error as delete_error:
            logger.error(f"Failed to drop unscheduled alarm {alarm.id}: {delete_error}")
        return

    result.created += 1
    logger.info(
        f"Created {alarm.offset.name} alarm for '{alarm.event_name}' at {alarm.fire_at.isoformat()}"
    )


def _apply_update(wake_scheduler: WakeScheduler, alarm: AlarmRecord, result: ResyncResult) -> None:
    try:
        cancel_alarm(wake_scheduler, alarm)
        alarm_store.update_alarm(alarm)
        schedule_alarm(wake_scheduler, alarm)
    except sqlite3.Error as e:
        logger.error(f"Failed to update alarm {alarm.id} for '{alarm.event_name}': {e}")
        result.failed += 1
        return
    except Exception as e:
        # The row already holds the new values; rearm_stored_alarms retries the wake
        logger.error(f"Failed to reschedule alarm {alarm.id} for '{alarm.event_name}': {e}")
        result.failed += 1
        return

    result.updated += 1
    logger.info(
        f"Updated {alarm.offset.name} alarm for '{alarm.event_name}' to {alarm.fire_at.isoformat()}"
    )


def _sweep_disabled(
    wake_scheduler: WakeScheduler,
    enabled: list[ReminderOffset],
    result: ResyncResult
) -> None:
    for offset in ReminderOffset:
        if offset not in enabled:
            result.deleted += disable_offset(wake_scheduler, offset)


async def resync(
    wake_scheduler: WakeScheduler,
    uid: str,
    now: Optional[datetime] = None
) -> ResyncResult:
    """Bring stored alarms and armed wakes in line with the remote events.

    Args:
        wake_scheduler: Where alarm wakes are armed and cancelled
        uid: Signed-in user id
        now: Reference time for relevance (defaults to the current time)

    Returns:
        ResyncResult with counts of applied and failed row actions
    """
    if not uid:
        raise ValueError("resync requires a user id")

    result = ResyncResult()
    offsets = get_enabled_offsets()
    _sweep_disabled(wake_scheduler, offsets, result)

    if not offsets:
        logger.debug("Alarm resync: no reminder offsets enabled")
        return result

    try:
        rows = await remote_store.fetch_all(config.EVENTS_COLLECTION)
    except RemoteStoreError as e:
        logger.error(f"Alarm resync aborted, could not fetch events: {e}")
        result.aborted = True
        return result

    now = now or datetime.now(timezone.utc)
    relevant = find_relevant_events(_parse_events(rows), uid, now)

    try:
        alarms = alarm_store.get_all_alarms()
    except sqlite3.Error as e:
        logger.error(f"Alarm resync aborted, could not read local alarms: {e}")
        result.aborted = True
        return result

    for plan in plan_resync(relevant, alarms, offsets):
        for alarm in plan.to_delete:
            _apply_delete(wake_scheduler, alarm, result)
        for alarm in plan.to_create:
            _apply_create(wake_scheduler, alarm, result)
        for alarm in plan.to_update:
            _apply_update(wake_scheduler, alarm, result)

    # Rows left unchanged may have lost their wake (restart, failed re-arm)
    result.rearmed = rearm_stored_alarms(wake_scheduler, now)

    if result.changed or result.failed or result.rearmed:
        logger.info(
            f"Alarm resync: {len(relevant)} relevant events, created={result.created}, "
            f"updated={result.updated}, deleted={result.deleted}, failed={result.failed}, "
            f"rearmed={result.rearmed}"
        )
    else:
        logger.debug(f"Alarm resync: {len(relevant)} relevant events, no changes")
    return result


def disable_offset(wake_scheduler: WakeScheduler, offset: ReminderOffset) -> int:
    """Cancel and delete every alarm of one offset, without a remote fetch.

    Returns:
        Count of alarms removed
    """
    try:
        alarms = alarm_store.get_alarms_by_offset(offset)
    except sqlite3.Error as e:
        logger.error(f"Could not read {offset.name} alarms: {e}")
        return 0

    result = ResyncResult()
    for alarm in alarms:
        _apply_delete(wake_scheduler, alarm, result)
    return result.deleted


def rearm_stored_alarms(wake_scheduler: WakeScheduler, now: Optional[datetime] = None) -> int:
    """Arm a wake for every stored alarm of an enabled offset that has none.

    Call this on startup to restore reminders after a restart. Alarms whose
    event has already started are left for the next resync to delete.

    Returns:
        Count of wakes armed
    """
    now = now or datetime.now(timezone.utc)
    offsets = get_enabled_offsets()
    try:
        alarms = alarm_store.get_all_alarms()
    except sqlite3.Error as e:
        logger.error(f"Could not read stored alarms to re-arm: {e}")
        return 0

    armed = 0
    for alarm in alarms:
        if alarm.offset not in offsets or alarm.event_time <= now:
            continue
        if wake_scheduler.is_armed(alarm_key(alarm)):
            continue
        try:
            schedule_alarm(wake_scheduler, alarm)
        except Exception as e:
            logger.error(f"Failed to re-arm alarm {alarm.id} for '{alarm.event_name}': {e}")
            continue
        armed += 1

    if armed:
        logger.info(f"Re-armed {armed} stored alarms")
    return armed


async def set_reminder_enabled(
    wake_scheduler: WakeScheduler,
    uid: str,
    offset: ReminderOffset,
    enabled: bool
) -> ResyncResult:
    """Persist a reminder toggle and apply it.

    Switching on runs a full resync; switching off only removes that offset's alarms.
    """
    preferences.set_bool(offset.setting.name, enabled)
    if enabled:
        return await resync(wake_scheduler, uid)
    return ResyncResult(deleted=disable_offset(wake_scheduler, offset))
