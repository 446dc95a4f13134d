"""Turn a fired reminder wake into a single user-facing alert."""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from logger import logger
from .. import config
from ..alerts import Alert, AlertKind, AlertSink
from ..models import parse_timestamp


async def execute_event_alarm(
    payload: dict,
    send_alert: AlertSink,
    now: Optional[datetime] = None
) -> bool:
    """Fire an event reminder.

    Called by APScheduler when a reminder wake arrives. The wake may be late
    (armed for a time already past), so the event start is re-checked and
    nothing is shown for an event that has already begun.

    Args:
        payload: Wake payload built by ``alarm_payload``
        send_alert: Where the alert is delivered
        now: Reference time (defaults to the current time)

    Returns:
        True if an alert was delivered
    """
    now = now or datetime.now(timezone.utc)
    event_time = parse_timestamp(payload["event_time"])
    event_name = payload["event_name"]

    if event_time <= now:
        logger.info(f"Suppressed reminder for '{event_name}': event started at {event_time.isoformat()}")
        return False

    local_time = event_time.astimezone(ZoneInfo(config.LOCAL_TIMEZONE))
    alert = Alert(
        kind=AlertKind.REMINDER,
        title="Event reminder",
        content=f"\"{event_name}\" starts at {local_time.strftime('%H:%M')}",
        target_route=f"{config.ROUTE_EVENT}/{payload['event_id']}",
    )

    try:
        await send_alert(alert)
    except Exception as e:
        logger.error(f"Failed to deliver reminder for '{event_name}': {e}")
        return False

    logger.info(f"Fired {payload['hours_before']}h reminder for '{event_name}'")
    return True
