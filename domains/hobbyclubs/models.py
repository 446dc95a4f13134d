"""Data types shared by the reminder and notification subsystems.

Remote rows (events, clubs, news, users, notifications) are parsed from the
Supabase JSON representation; local rows (alarms) come from SQLite.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from dateutil.parser import parse as parse_datetime


def parse_timestamp(value) -> datetime:
    """Parse an ISO timestamp (or pass through a datetime), always timezone aware."""
    if isinstance(value, datetime):
        result = value
    else:
        result = parse_datetime(value)

    # Remote timestamps without zone are stored as UTC
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


class NotificationSetting(Enum):
    """User-facing notification toggles, persisted one boolean each."""
    EVENT_NEW = "New event in my clubs"
    EVENT_HOUR_REMINDER = "1-hour reminder"
    EVENT_DAY_REMINDER = "1-day reminder"
    NEWS_GENERAL = "General news"
    NEWS_CLUB = "Club news"
    REQUEST_MEMBERSHIP = "New membership requests"
    REQUEST_ACCEPTED = "Accepted membership requests"
    EVENT_REQUEST = "New participation requests"
    EVENT_REQUEST_ACCEPTED = "Accepted participation requests"

    @property
    def title(self) -> str:
        return self.value


class ReminderOffset(Enum):
    """How long before an event its reminder fires, in hours."""
    ONE_HOUR = 1
    ONE_DAY = 24

    @property
    def hours_before(self) -> int:
        return self.value

    @property
    def delta(self) -> timedelta:
        return timedelta(hours=self.value)

    @property
    def setting(self) -> NotificationSetting:
        if self is ReminderOffset.ONE_HOUR:
            return NotificationSetting.EVENT_HOUR_REMINDER
        return NotificationSetting.EVENT_DAY_REMINDER


class NotificationType(Enum):
    """Notification record types written by the app into the remote store."""
    EVENT_CREATED = "EVENT_CREATED"
    NEWS_GENERAL = "NEWS_GENERAL"
    NEWS_CLUB = "NEWS_CLUB"
    CLUB_REQUEST_PENDING = "CLUB_REQUEST_PENDING"
    CLUB_REQUEST_ACCEPTED = "CLUB_REQUEST_ACCEPTED"
    EVENT_REQUEST_PENDING = "EVENT_REQUEST_PENDING"
    EVENT_REQUEST_ACCEPTED = "EVENT_REQUEST_ACCEPTED"


@dataclass
class Event:
    id: str
    name: str
    date: datetime
    club_id: str = ""
    participants: list[str] = field(default_factory=list)
    likers: list[str] = field(default_factory=list)
    admins: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict) -> "Event":
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            date=parse_timestamp(row["date"]),
            club_id=row.get("club_id") or "",
            participants=list(row.get("participants") or []),
            likers=list(row.get("likers") or []),
            admins=list(row.get("admins") or []),
        )


@dataclass
class Club:
    id: str
    name: str
    members: list[str] = field(default_factory=list)
    admins: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict) -> "Club":
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            members=list(row.get("members") or []),
            admins=list(row.get("admins") or []),
        )


@dataclass
class News:
    id: str
    headline: str
    club_id: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "News":
        return cls(
            id=row["id"],
            headline=row.get("headline") or "",
            club_id=row.get("club_id") or "",
        )


@dataclass
class User:
    id: str
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: dict) -> "User":
        return cls(
            id=row["id"],
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
        )


@dataclass
class NotificationRecord:
    """A notification row; only ``read_by`` is ever mutated from here."""
    id: str
    type: NotificationType
    time: datetime
    read_by: list[str] = field(default_factory=list)
    club_id: str = ""
    event_id: str = ""
    news_id: str = ""
    user_id: str = ""

    def is_read_by(self, uid: str) -> bool:
        return uid in self.read_by

    @classmethod
    def from_row(cls, row: dict) -> "NotificationRecord":
        return cls(
            id=row["id"],
            type=NotificationType(row["type"]),
            time=parse_timestamp(row["time"]),
            read_by=list(row.get("read_by") or []),
            club_id=row.get("club_id") or "",
            event_id=row.get("event_id") or "",
            news_id=row.get("news_id") or "",
            user_id=row.get("user_id") or "",
        )


@dataclass
class AlarmRecord:
    """A locally scheduled event reminder.

    At most one row exists per ``(event_id, offset)``; ``id`` is the local
    row key and is None until the row has been inserted.
    """
    event_id: str
    event_time: datetime
    event_name: str
    offset: ReminderOffset
    id: Optional[int] = None

    @property
    def fire_at(self) -> datetime:
        return self.event_time - self.offset.delta


@dataclass
class NotificationContent:
    """Display-ready notification, derived from a record and its entities."""
    id: str
    title: str
    content: str
    category: NotificationSetting
    target_route: str
    date: datetime
