"""Render notification records into display-ready content.

A renderer joins the record with the club, event, news article or user it
points at. It returns None, and the notification is dropped, when one of
those entities no longer exists. New-event notifications are also dropped
once the event has started.
"""

from datetime import datetime
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from .. import config, remote_store
from ..models import (
    Club,
    Event,
    News,
    NotificationContent,
    NotificationRecord,
    NotificationSetting,
    NotificationType,
    User,
)


async def _club(club_id: str) -> Optional[Club]:
    row = await remote_store.fetch_by_id(config.CLUBS_COLLECTION, club_id)
    return Club.from_row(row) if row else None


async def _event(event_id: str) -> Optional[Event]:
    row = await remote_store.fetch_by_id(config.EVENTS_COLLECTION, event_id)
    return Event.from_row(row) if row else None


async def _news(news_id: str) -> Optional[News]:
    row = await remote_store.fetch_by_id(config.NEWS_COLLECTION, news_id)
    return News.from_row(row) if row else None


async def _user(user_id: str) -> Optional[User]:
    row = await remote_store.fetch_by_id(config.USERS_COLLECTION, user_id)
    return User.from_row(row) if row else None


def _content(
    record: NotificationRecord,
    setting: NotificationSetting,
    title: str,
    content: str,
    route: str
) -> NotificationContent:
    return NotificationContent(
        id=record.id,
        title=title,
        content=content,
        category=setting,
        target_route=route,
        date=record.time,
    )


async def render_new_event(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    event = await _event(record.event_id)
    if event is None or event.date < now:
        return None
    club = await _club(record.club_id)
    if club is None:
        return None

    local = event.date.astimezone(ZoneInfo(config.LOCAL_TIMEZONE))
    return _content(
        record,
        NotificationSetting.EVENT_NEW,
        f"New event hosted by {club.name}",
        f"{event.name} / {local.strftime('%d.%m.%Y')} at {local.strftime('%H:%M')}",
        f"{config.ROUTE_EVENT}/{event.id}",
    )


async def render_general_news(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    news = await _news(record.news_id)
    if news is None:
        return None
    return _content(
        record,
        NotificationSetting.NEWS_GENERAL,
        "General announcement",
        news.headline,
        f"{config.ROUTE_NEWS}/{news.id}",
    )


async def render_club_news(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    news = await _news(record.news_id)
    club = await _club(record.club_id)
    if news is None or club is None:
        return None
    return _content(
        record,
        NotificationSetting.NEWS_CLUB,
        f"News from {club.name}",
        news.headline,
        f"{config.ROUTE_NEWS}/{news.id}",
    )


async def render_membership_request(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    user = await _user(record.user_id)
    club = await _club(record.club_id)
    if user is None or club is None:
        return None
    return _content(
        record,
        NotificationSetting.REQUEST_MEMBERSHIP,
        "Membership request",
        f"{user.full_name} has requested to join {club.name}",
        f"{config.ROUTE_CLUB_REQUESTS}/{club.id}",
    )


async def render_accepted_membership(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    club = await _club(record.club_id)
    if club is None:
        return None
    return _content(
        record,
        NotificationSetting.REQUEST_ACCEPTED,
        f"Welcome to {club.name}",
        "Your request to join the club was accepted",
        f"{config.ROUTE_CLUB_PAGE}/{club.id}",
    )


async def render_participation_request(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    user = await _user(record.user_id)
    event = await _event(record.event_id)
    if user is None or event is None:
        return None
    return _content(
        record,
        NotificationSetting.EVENT_REQUEST,
        "Participation request",
        f"{user.full_name} has requested to join {event.name}",
        f"{config.ROUTE_EVENT_REQUESTS}/{event.id}",
    )


async def render_accepted_participation(record: NotificationRecord, now: datetime) -> Optional[NotificationContent]:
    event = await _event(record.event_id)
    if event is None:
        return None
    return _content(
        record,
        NotificationSetting.EVENT_REQUEST_ACCEPTED,
        "Request accepted",
        f"Your request to join {event.name} was accepted",
        f"{config.ROUTE_EVENT}/{event.id}",
    )


Renderer = Callable[[NotificationRecord, datetime], Awaitable[Optional[NotificationContent]]]

RENDERERS: dict[NotificationType, Renderer] = {
    NotificationType.EVENT_CREATED: render_new_event,
    NotificationType.NEWS_GENERAL: render_general_news,
    NotificationType.NEWS_CLUB: render_club_news,
    NotificationType.CLUB_REQUEST_PENDING: render_membership_request,
    NotificationType.CLUB_REQUEST_ACCEPTED: render_accepted_membership,
    NotificationType.EVENT_REQUEST_PENDING: render_participation_request,
    NotificationType.EVENT_REQUEST_ACCEPTED: render_accepted_participation,
}
