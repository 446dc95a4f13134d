"""Pytest configuration and fixtures."""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, AsyncMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

UID = "user-1"


@pytest.fixture
def temp_db(monkeypatch):
    """Fresh local SQLite database for each test."""
    import domains.hobbyclubs.config as config
    from domains.hobbyclubs import local_store

    fd, temp_path = tempfile.mkstemp(suffix="_hobbyclubs_test.db")
    os.close(fd)

    monkeypatch.setattr(config, "LOCAL_DB", temp_path)
    local_store.close()

    yield local_store

    local_store.close()
    try:
        os.unlink(temp_path)
        for suffix in ["-wal", "-shm"]:
            try:
                os.unlink(temp_path + suffix)
            except FileNotFoundError:
                pass
    except OSError:
        pass


class FakeRemote:
    """In-memory stand-in for the Supabase tables.

    Implements the eq / contains / in filter semantics of remote_store and
    records every query made, so tests can assert what was (not) fetched.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {
            "events": [],
            "clubs": [],
            "news": [],
            "users": [],
            "notifications": [],
        }
        self.queries: list[tuple] = []
        self.failing: set[str] = set()

    def add(self, collection: str, **row) -> dict:
        self.tables[collection].append(row)
        return row

    def get(self, collection: str, record_id: str) -> dict | None:
        for row in self.tables[collection]:
            if row["id"] == record_id:
                return row
        return None

    def _check(self, collection):
        from domains.hobbyclubs.remote_store import RemoteStoreError
        if collection in self.failing:
            raise RemoteStoreError(f"Failed to fetch {collection}: boom")

    @staticmethod
    def _matches(row: dict, field: str, op: str, value) -> bool:
        if op == "eq":
            return str(row.get(field)) == str(value)
        if op == "contains":
            return value in (row.get(field) or [])
        if op == "in":
            return row.get(field) in value
        raise ValueError(op)

    async def fetch_all(self, collection):
        self.queries.append((collection,))
        self._check(collection)
        return [dict(row) for row in self.tables[collection]]

    async def fetch_where(self, collection, *filters):
        self.queries.append((collection,) + filters)
        self._check(collection)
        return [
            dict(row) for row in self.tables[collection]
            if all(self._matches(row, *f) for f in filters)
        ]

    async def fetch_where_in(self, collection, field, values, *filters):
        if not values:
            return []
        return await self.fetch_where(collection, (field, "in", list(values)), *filters)

    async def fetch_by_id(self, collection, record_id):
        rows = await self.fetch_where(collection, ("id", "eq", record_id))
        return rows[0] if rows else None

    async def mark_read(self, notification_id, uid):
        self._check("notifications")
        row = self.get("notifications", notification_id)
        if row is None:
            return False
        read_by = row.setdefault("read_by", [])
        if uid not in read_by:
            read_by.append(uid)
        return True

    async def unmark_read(self, notification_id, uid):
        row = self.get("notifications", notification_id)
        if row is None:
            return False
        row["read_by"] = [r for r in row.get("read_by", []) if r != uid]
        return True


@pytest.fixture
def fake_remote(monkeypatch):
    """Replace the remote store functions with an in-memory fake."""
    from domains.hobbyclubs import remote_store

    remote = FakeRemote()
    for name in ["fetch_all", "fetch_where", "fetch_where_in", "fetch_by_id", "mark_read", "unmark_read"]:
        monkeypatch.setattr(remote_store, name, getattr(remote, name))
    return remote


class RecordingWakeScheduler:
    """WakeScheduler double that records calls and tracks armed keys."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.armed: dict[str, tuple] = {}
        self.fail_keys: set[str] = set()

    def schedule(self, key, fire_at, payload):
        if key in self.fail_keys:
            raise RuntimeError(f"cannot arm {key}")
        self.calls.append(("schedule", key, fire_at))
        self.armed[key] = (fire_at, payload)

    def cancel(self, key):
        self.calls.append(("cancel", key))
        self.armed.pop(key, None)

    def is_armed(self, key):
        return key in self.armed


@pytest.fixture
def wake():
    return RecordingWakeScheduler()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def later(now):
    """Build a timestamp relative to now: later(hours=2)."""
    def _later(**kwargs):
        return now + timedelta(**kwargs)
    return _later


class MockBot:
    """Mock Discord bot for testing."""

    def __init__(self):
        self.sent_messages = []
        self._channel = MockChannel(self)

    def get_channel(self, channel_id):
        return self._channel

    async def fetch_channel(self, channel_id):
        return self._channel


class MockChannel:
    """Mock Discord channel for testing."""

    def __init__(self, bot):
        self.bot = bot

    async def send(self, message):
        self.bot.sent_messages.append(message)


@pytest.fixture
def mock_discord_bot():
    return MockBot()


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch("httpx.AsyncClient") as mock:
        client = AsyncMock()
        mock.return_value.__aenter__.return_value = client
        yield client
