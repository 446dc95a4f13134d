"""The seven notification categories and how each one is queried.

Each fetcher applies its relevance predicate in the remote query. Categories
scoped to the user's clubs or administered events first look up those
parents and return nothing, without a notification query, when there are none.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

from .. import config, remote_store
from ..models import NotificationSetting, NotificationType


@dataclass(frozen=True)
class Category:
    setting: NotificationSetting
    type: NotificationType
    fetch: Callable[[str], Awaitable[list[dict]]]


async def _ids(collection: str, field: str, uid: str) -> list[str]:
    rows = await remote_store.fetch_where(collection, (field, "contains", uid))
    return [row["id"] for row in rows]


async def _of_type_within(type_: NotificationType, field: str, parent_ids: list[str]) -> list[dict]:
    if not parent_ids:
        return []
    return await remote_store.fetch_where_in(
        config.NOTIFICATIONS_COLLECTION,
        field,
        parent_ids,
        ("type", "eq", type_.value)
    )


async def _of_type_for_user(type_: NotificationType, uid: str) -> list[dict]:
    return await remote_store.fetch_where(
        config.NOTIFICATIONS_COLLECTION,
        ("type", "eq", type_.value),
        ("user_id", "eq", uid)
    )


async def fetch_new_events(uid: str) -> list[dict]:
    club_ids = await _ids(config.CLUBS_COLLECTION, "members", uid)
    return await _of_type_within(NotificationType.EVENT_CREATED, "club_id", club_ids)


async def fetch_general_news(uid: str) -> list[dict]:
    return await remote_store.fetch_where(
        config.NOTIFICATIONS_COLLECTION,
        ("type", "eq", NotificationType.NEWS_GENERAL.value)
    )


async def fetch_club_news(uid: str) -> list[dict]:
    club_ids = await _ids(config.CLUBS_COLLECTION, "members", uid)
    return await _of_type_within(NotificationType.NEWS_CLUB, "club_id", club_ids)


async def fetch_membership_requests(uid: str) -> list[dict]:
    club_ids = await _ids(config.CLUBS_COLLECTION, "admins", uid)
    return await _of_type_within(NotificationType.CLUB_REQUEST_PENDING, "club_id", club_ids)


async def fetch_accepted_memberships(uid: str) -> list[dict]:
    return await _of_type_for_user(NotificationType.CLUB_REQUEST_ACCEPTED, uid)


async def fetch_participation_requests(uid: str) -> list[dict]:
    event_ids = await _ids(config.EVENTS_COLLECTION, "admins", uid)
    return await _of_type_within(NotificationType.EVENT_REQUEST_PENDING, "event_id", event_ids)


async def fetch_accepted_participations(uid: str) -> list[dict]:
    return await _of_type_for_user(NotificationType.EVENT_REQUEST_ACCEPTED, uid)


CATEGORIES: dict[NotificationSetting, Category] = {
    c.setting: c for c in [
        Category(NotificationSetting.EVENT_NEW, NotificationType.EVENT_CREATED, fetch_new_events),
        Category(NotificationSetting.NEWS_GENERAL, NotificationType.NEWS_GENERAL, fetch_general_news),
        Category(NotificationSetting.NEWS_CLUB, NotificationType.NEWS_CLUB, fetch_club_news),
        Category(
            NotificationSetting.REQUEST_MEMBERSHIP,
            NotificationType.CLUB_REQUEST_PENDING,
            fetch_membership_requests
        ),
        Category(
            NotificationSetting.REQUEST_ACCEPTED,
            NotificationType.CLUB_REQUEST_ACCEPTED,
            fetch_accepted_memberships
        ),
        Category(
            NotificationSetting.EVENT_REQUEST,
            NotificationType.EVENT_REQUEST_PENDING,
            fetch_participation_requests
        ),
        Category(
            NotificationSetting.EVENT_REQUEST_ACCEPTED,
            NotificationType.EVENT_REQUEST_ACCEPTED,
            fetch_accepted_participations
        ),
    ]
}

SETTING_BY_TYPE: dict[NotificationType, NotificationSetting] = {
    c.type: c.setting for c in CATEGORIES.values()
}
