"""Notification aggregation for the signed-in user.

Enabled categories are fetched concurrently and joined by category; a
category that fails or times out contributes nothing and the others still
count. Unread records are rendered to content and ranked newest first.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from logger import logger
from .. import config, preferences, remote_store
from ..models import NotificationContent, NotificationRecord, NotificationSetting
from ..remote_store import RemoteStoreError
from .categories import CATEGORIES
from .renderers import RENDERERS


def _require_uid(uid: str) -> None:
    if not uid:
        raise ValueError("A user id is required")


def enabled_categories() -> list[NotificationSetting]:
    """Notification categories the user has switched on (reminders excluded)."""
    return [setting for setting in CATEGORIES if preferences.get_bool(setting.name)]


async def _fetch_category(setting: NotificationSetting, uid: str) -> list[NotificationRecord]:
    category = CATEGORIES[setting]
    try:
        rows = await asyncio.wait_for(category.fetch(uid), timeout=config.CATEGORY_FETCH_TIMEOUT)
    except RemoteStoreError as e:
        logger.warning(f"Notification category {setting.name} unavailable: {e}")
        return []
    except asyncio.TimeoutError:
        logger.warning(f"Notification category {setting.name} timed out")
        return []

    records = []
    for row in rows:
        try:
            records.append(NotificationRecord.from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed notification {row.get('id')}: {e}")
    return records


async def fetch_categories(uid: str) -> dict[NotificationSetting, list[NotificationRecord]]:
    """Fetch every enabled category concurrently, keyed by category."""
    settings = enabled_categories()
    results = await asyncio.gather(*(_fetch_category(setting, uid) for setting in settings))
    return dict(zip(settings, results))


def merge_categories(by_category: dict[NotificationSetting, list[NotificationRecord]]) -> list[NotificationRecord]:
    """Union of all categories' records, one per id, newest first."""
    merged: dict[str, NotificationRecord] = {}
    for records in by_category.values():
        for record in records:
            merged.setdefault(record.id, record)
    return sorted(merged.values(), key=lambda r: r.time, reverse=True)


async def get_all(uid: str) -> list[NotificationRecord]:
    """All relevant notification records for enabled categories, newest first."""
    _require_uid(uid)
    return merge_categories(await fetch_categories(uid))


async def get_unread(uid: str) -> list[NotificationRecord]:
    return [record for record in await get_all(uid) if not record.is_read_by(uid)]


async def to_content(record: NotificationRecord, now: Optional[datetime] = None) -> Optional[NotificationContent]:
    """Render one record, or None if it cannot be shown."""
    now = now or datetime.now(timezone.utc)
    renderer = RENDERERS[record.type]
    try:
        return await renderer(record, now)
    except RemoteStoreError as e:
        logger.warning(f"Could not render notification {record.id}: {e}")
        return None
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Skipping notification {record.id}, malformed linked row: {e}")
        return None


async def get_unread_content(uid: str, now: Optional[datetime] = None) -> list[NotificationContent]:
    """Unread notifications rendered for display, newest first."""
    unread = await get_unread(uid)
    now = now or datetime.now(timezone.utc)
    contents = await asyncio.gather(*(to_content(record, now) for record in unread))
    return sorted(
        (c for c in contents if c is not None),
        key=lambda c: c.date,
        reverse=True
    )


async def mark_read(notification_id: str, uid: str) -> bool:
    """Record that ``uid`` has read a notification; repeating it changes nothing."""
    _require_uid(uid)
    try:
        return await remote_store.mark_read(notification_id, uid)
    except RemoteStoreError as e:
        logger.error(f"Failed to mark notification {notification_id} read: {e}")
        return False


async def mark_all_read(notification_ids: list[str], uid: str) -> int:
    """Mark several notifications read.

    Returns:
        Count marked successfully
    """
    marked = 0
    for notification_id in notification_ids:
        if await mark_read(notification_id, uid):
            marked += 1
    logger.info(f"Marked {marked}/{len(notification_ids)} notifications read")
    return marked


async def reset_all_read(uid: str) -> int:
    """Make every notification ``uid`` has read unread again.

    Returns:
        Count reset
    """
    _require_uid(uid)
    try:
        rows = await remote_store.fetch_where(
            config.NOTIFICATIONS_COLLECTION,
            ("read_by", "contains", uid)
        )
    except RemoteStoreError as e:
        logger.error(f"Failed to fetch read notifications: {e}")
        return 0

    reset = 0
    for row in rows:
        try:
            if await remote_store.unmark_read(row["id"], uid):
                reset += 1
        except RemoteStoreError as e:
            logger.error(f"Failed to reset notification {row['id']}: {e}")
    logger.info(f"Reset {reset} read notifications")
    return reset
