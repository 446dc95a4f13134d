"""Event reminder alarms.

Uses APScheduler date triggers with SQLite persistence.
"""

from .store import insert_alarm, update_alarm, delete_alarm, get_all_alarms, get_alarms_by_offset
from .scheduler import WakeScheduler, alarm_key, schedule_alarm, cancel_alarm
from .reconciler import resync, disable_offset, rearm_stored_alarms, set_reminder_enabled, ResyncResult
from .executor import execute_event_alarm

__all__ = [
    "insert_alarm",
    "update_alarm",
    "delete_alarm",
    "get_all_alarms",
    "get_alarms_by_offset",
    "WakeScheduler",
    "alarm_key",
    "schedule_alarm",
    "cancel_alarm",
    "resync",
    "disable_offset",
    "rearm_stored_alarms",
    "set_reminder_enabled",
    "ResyncResult",
    "execute_event_alarm",
]
