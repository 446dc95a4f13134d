"""Supabase (PostgREST) access for the remote document store.

Read-only queries over events, clubs, news, users and notifications, plus the
single mutation this subsystem performs: adding or removing the current user
in a notification's ``read_by`` array.

Every failure - missing configuration, transport error, non-2xx status - is
raised as ``RemoteStoreError`` so callers can decide between abort and skip.
"""

import httpx

from config import SUPABASE_URL, SUPABASE_KEY
from logger import logger
from . import config


class RemoteStoreError(Exception):
    """A remote fetch or mutation could not be completed."""


def _headers():
    """Get headers for Supabase API calls."""
    return {
        "apikey": SUPABASE_KEY,
        "Authorization": f"Bearer {SUPABASE_KEY}",
        "Content-Type": "application/json",
        "Prefer": "return=representation"
    }


def _table_url(collection: str) -> str:
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise RemoteStoreError("Supabase not configured")
    return f"{SUPABASE_URL}/rest/v1/{collection}"


def _quote(value) -> str:
    """Quote a value for use inside a PostgREST list or array literal."""
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _filter_param(field: str, op: str, value) -> tuple[str, str]:
    """Translate one (field, op, value) filter into a PostgREST query param.

    Supported ops:
        eq: field equals value
        contains: array field contains value
        in: field is one of the values in a list
    """
    if op == "eq":
        return field, f"eq.{value}"
    if op == "contains":
        return field, f"cs.{{{_quote(value)}}}"
    if op == "in":
        return field, f"in.({','.join(_quote(v) for v in value)})"
    raise ValueError(f"Unsupported filter op: {op}")


async def _get(collection: str, params: list[tuple[str, str]]) -> list[dict]:
    url = _table_url(collection)
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                url,
                headers=_headers(),
                params=[("select", "*")] + params,
                timeout=config.REMOTE_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as e:
        raise RemoteStoreError(f"Failed to fetch {collection}: {e}") from e


async def _patch(collection: str, record_id: str, changes: dict) -> None:
    url = _table_url(collection)
    try:
        async with httpx.AsyncClient() as client:
            response = await client.patch(
                url,
                headers=_headers(),
                params=[("id", f"eq.{record_id}")],
                json=changes,
                timeout=config.REMOTE_TIMEOUT
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise RemoteStoreError(f"Failed to update {collection}/{record_id}: {e}") from e


async def fetch_all(collection: str) -> list[dict]:
    """Fetch every row of a collection."""
    return await _get(collection, [])


async def fetch_where(collection: str, *filters: tuple[str, str, object]) -> list[dict]:
    """Fetch rows matching all of the given (field, op, value) filters.

    Example:
        await fetch_where("clubs", ("members", "contains", uid))
    """
    return await _get(collection, [_filter_param(*f) for f in filters])


async def fetch_where_in(
    collection: str,
    field: str,
    values: list,
    *filters: tuple[str, str, object]
) -> list[dict]:
    """Fetch rows whose ``field`` is one of ``values`` (plus optional filters).

    An empty ``values`` list matches nothing and is answered without a query.
    """
    if not values:
        return []
    return await fetch_where(collection, (field, "in", list(values)), *filters)


async def fetch_by_id(collection: str, record_id: str) -> dict | None:
    """Fetch a single row by id, or None if it does not exist."""
    if not record_id:
        return None
    rows = await fetch_where(collection, ("id", "eq", record_id))
    return rows[0] if rows else None


async def mark_read(notification_id: str, uid: str) -> bool:
    """Add ``uid`` to a notification's ``read_by`` array.

    Idempotent: a user already present is left alone without a write.

    Returns:
        False if the notification no longer exists, True otherwise
    """
    row = await fetch_by_id(config.NOTIFICATIONS_COLLECTION, notification_id)
    if row is None:
        logger.warning(f"Cannot mark missing notification {notification_id} as read")
        return False

    read_by = list(row.get("read_by") or [])
    if uid in read_by:
        return True

    await _patch(config.NOTIFICATIONS_COLLECTION, notification_id, {"read_by": read_by + [uid]})
    logger.debug(f"Marked notification {notification_id} read for {uid}")
    return True


async def unmark_read(notification_id: str, uid: str) -> bool:
    """Remove ``uid`` from a notification's ``read_by`` array (idempotent)."""
    row = await fetch_by_id(config.NOTIFICATIONS_COLLECTION, notification_id)
    if row is None:
        return False

    read_by = list(row.get("read_by") or [])
    if uid not in read_by:
        return True

    await _patch(
        config.NOTIFICATIONS_COLLECTION,
        notification_id,
        {"read_by": [r for r in read_by if r != uid]}
    )
    return True
