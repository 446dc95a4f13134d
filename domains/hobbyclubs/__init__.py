"""Hobby Clubs domain - event reminders and in-app notifications.

Keeps locally scheduled event reminders in step with the remote event store
and aggregates club, news and request notifications into one unread stream.
"""

from .service import NotificationCenter, parse_setting
from .models import NotificationSetting, ReminderOffset

__all__ = [
    "NotificationCenter",
    "parse_setting",
    "NotificationSetting",
    "ReminderOffset",
]
