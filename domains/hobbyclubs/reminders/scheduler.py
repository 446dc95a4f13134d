"""Wake scheduling for event reminders on top of APScheduler date jobs.

Each wake is a one-off job whose id is the wake key, so scheduling the same
key again replaces the armed job and cancelling an unknown key is a no-op.
"""

from datetime import datetime, timezone
from typing import Callable, Awaitable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from logger import logger
from ..models import AlarmRecord


class WakeScheduler:
    """Schedule and cancel keyed wake-ups that deliver a payload to a handler."""

    def __init__(self, scheduler: AsyncIOScheduler, on_fire: Callable[[dict], Awaitable]):
        """
        Args:
            scheduler: APScheduler instance (started by the caller)
            on_fire: Async function called with the payload when a wake fires
        """
        self.scheduler = scheduler
        self.on_fire = on_fire

    def schedule(self, key: str, fire_at: datetime, payload: dict) -> None:
        """Arm (or re-arm) the wake identified by ``key``.

        A ``fire_at`` already in the past fires as soon as the scheduler runs.
        """
        self.scheduler.add_job(
            self.on_fire,
            trigger=DateTrigger(run_date=fire_at),
            args=[payload],
            id=key,
            name=f"wake:{key}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        logger.debug(f"Armed wake {key} at {fire_at.isoformat()}")

    def cancel(self, key: str) -> None:
        """Disarm the wake identified by ``key``; safe if nothing is armed."""
        try:
            self.scheduler.remove_job(key)
            logger.debug(f"Cancelled wake {key}")
        except JobLookupError:
            pass

    def is_armed(self, key: str) -> bool:
        return self.scheduler.get_job(key) is not None


def alarm_key(alarm: AlarmRecord) -> str:
    """Wake key for an alarm: its local id combined with its offset."""
    return f"event_alarm_{alarm.id}_{alarm.offset.hours_before}h"


def alarm_payload(alarm: AlarmRecord) -> dict:
    return {
        "alarm_id": alarm.id,
        "event_id": alarm.event_id,
        "event_name": alarm.event_name,
        "event_time": alarm.event_time.astimezone(timezone.utc).isoformat(),
        "hours_before": alarm.offset.hours_before,
    }


def schedule_alarm(wake_scheduler: WakeScheduler, alarm: AlarmRecord) -> None:
    wake_scheduler.schedule(alarm_key(alarm), alarm.fire_at, alarm_payload(alarm))


def cancel_alarm(wake_scheduler: WakeScheduler, alarm: AlarmRecord) -> None:
    wake_scheduler.cancel(alarm_key(alarm))
