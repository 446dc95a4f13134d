"""Tests for notification categories, rendering and aggregation."""

import asyncio
from datetime import timedelta

import pytest

from domains.hobbyclubs import preferences
from domains.hobbyclubs.models import NotificationSetting
from domains.hobbyclubs.notifications import categories, pipeline

UID = "user-1"


def _enable(*settings):
    for setting in settings:
        preferences.set_bool(setting.name, True)


def _enable_all():
    _enable(*categories.CATEGORIES)


@pytest.fixture
def world(fake_remote, now, later):
    """A user who is a member and admin of club-1 and admin of ev-1."""
    r = fake_remote
    r.add("clubs", id="club-1", name="Chess Club", members=[UID, "user-2"], admins=[UID])
    r.add("clubs", id="club-2", name="Knitting Circle", members=["user-2"], admins=["user-2"])
    r.add("events", id="ev-1", name="Blitz night", date=later(days=2).isoformat(), club_id="club-1",
          participants=[UID], likers=[], admins=[UID])
    r.add("events", id="ev-old", name="Old tournament", date=later(days=-2).isoformat(), club_id="club-1",
          participants=[], likers=[], admins=[])
    r.add("events", id="ev-2", name="Yarn swap", date=later(days=3).isoformat(), club_id="club-2",
          participants=[], likers=[], admins=["user-2"])
    r.add("news", id="news-1", headline="Library closed on Friday", club_id="")
    r.add("news", id="news-2", headline="New boards arrived", club_id="club-1")
    r.add("users", id="user-2", first_name="Aino", last_name="Virtanen")

    def notification(nid, type_, minutes_ago, read_by=(), **fields):
        return r.add(
            "notifications",
            id=nid,
            type=type_,
            time=(now - timedelta(minutes=minutes_ago)).isoformat(),
            read_by=list(read_by),
            **fields
        )

    notification("n-event", "EVENT_CREATED", 10, club_id="club-1", event_id="ev-1")
    notification("n-event-old", "EVENT_CREATED", 20, club_id="club-1", event_id="ev-old")
    notification("n-event-other", "EVENT_CREATED", 5, club_id="club-2", event_id="ev-2")
    notification("n-general", "NEWS_GENERAL", 30, news_id="news-1")
    notification("n-club", "NEWS_CLUB", 40, club_id="club-1", news_id="news-2")
    notification("n-member", "CLUB_REQUEST_PENDING", 50, club_id="club-1", user_id="user-2")
    notification("n-welcome", "CLUB_REQUEST_ACCEPTED", 60, club_id="club-1", user_id=UID)
    notification("n-welcome-other", "CLUB_REQUEST_ACCEPTED", 1, club_id="club-2", user_id="user-2")
    notification("n-join", "EVENT_REQUEST_PENDING", 70, event_id="ev-1", user_id="user-2")
    notification("n-join-other", "EVENT_REQUEST_PENDING", 2, event_id="ev-2", user_id=UID)
    notification("n-accepted", "EVENT_REQUEST_ACCEPTED", 80, event_id="ev-1", user_id=UID)
    notification("n-read", "NEWS_GENERAL", 3, news_id="news-1", read_by=[UID])
    return r


@pytest.mark.asyncio
class TestCategories:
    """Each category's relevance predicate."""

    async def test_new_events_only_from_member_clubs(self, world):
        rows = await categories.fetch_new_events(UID)
        assert sorted(r["id"] for r in rows) == ["n-event", "n-event-old"]

    async def test_general_news_for_everyone(self, world):
        rows = await categories.fetch_general_news(UID)
        assert sorted(r["id"] for r in rows) == ["n-general", "n-read"]

    async def test_club_news(self, world):
        rows = await categories.fetch_club_news(UID)
        assert [r["id"] for r in rows] == ["n-club"]

    async def test_membership_requests_for_admin_clubs(self, world):
        rows = await categories.fetch_membership_requests(UID)
        assert [r["id"] for r in rows] == ["n-member"]

    async def test_accepted_memberships_for_user(self, world):
        rows = await categories.fetch_accepted_memberships(UID)
        assert [r["id"] for r in rows] == ["n-welcome"]

    async def test_participation_requests_for_admin_events(self, world):
        rows = await categories.fetch_participation_requests(UID)
        assert [r["id"] for r in rows] == ["n-join"]

    async def test_accepted_participations_for_user(self, world):
        rows = await categories.fetch_accepted_participations(UID)
        assert [r["id"] for r in rows] == ["n-accepted"]

    async def test_no_clubs_skips_notification_query(self, fake_remote):
        rows = await categories.fetch_club_news("nobody")

        assert rows == []
        assert [q[0] for q in fake_remote.queries] == ["clubs"]

    async def test_no_admin_events_skips_notification_query(self, fake_remote):
        assert await categories.fetch_participation_requests("nobody") == []
        assert all(q[0] != "notifications" for q in fake_remote.queries)


@pytest.mark.asyncio
class TestAggregation:

    async def test_disabled_categories_not_fetched(self, temp_db, world):
        _enable(NotificationSetting.NEWS_GENERAL)

        records = await pipeline.get_all(UID)

        assert {r.id for r in records} == {"n-general", "n-read"}
        assert all(q[0] == "notifications" for q in world.queries)

    async def test_nothing_enabled_is_empty(self, temp_db, world):
        assert await pipeline.get_all(UID) == []
        assert world.queries == []

    async def test_merged_newest_first(self, temp_db, world):
        _enable_all()

        records = await pipeline.get_all(UID)

        times = [r.time for r in records]
        assert times == sorted(times, reverse=True)
        assert len({r.id for r in records}) == len(records)
        assert "n-event-other" not in {r.id for r in records}

    async def test_unread_excludes_read(self, temp_db, world):
        _enable_all()

        unread = await pipeline.get_unread(UID)

        assert "n-read" not in {r.id for r in unread}
        assert all(UID not in r.read_by for r in unread)

    async def test_failing_category_does_not_block_others(self, temp_db, world):
        _enable(NotificationSetting.NEWS_GENERAL, NotificationSetting.NEWS_CLUB)
        world.failing.add("clubs")

        records = await pipeline.get_all(UID)

        assert {r.id for r in records} == {"n-general", "n-read"}

    async def test_slow_category_times_out(self, temp_db, world, monkeypatch):
        _enable(NotificationSetting.NEWS_GENERAL, NotificationSetting.REQUEST_ACCEPTED)
        monkeypatch.setattr(pipeline.config, "CATEGORY_FETCH_TIMEOUT", 0.05)

        async def never(uid):
            await asyncio.sleep(10)
            return []

        slow = categories.Category(
            NotificationSetting.REQUEST_ACCEPTED,
            categories.CATEGORIES[NotificationSetting.REQUEST_ACCEPTED].type,
            never
        )
        monkeypatch.setitem(pipeline.CATEGORIES, NotificationSetting.REQUEST_ACCEPTED, slow)

        records = await pipeline.get_all(UID)

        assert {r.id for r in records} == {"n-general", "n-read"}

    async def test_malformed_row_skipped(self, temp_db, world):
        _enable(NotificationSetting.NEWS_GENERAL)
        world.add("notifications", id="n-bad", type="NEWS_GENERAL", time="not a date", read_by=[])

        records = await pipeline.get_all(UID)

        assert "n-bad" not in {r.id for r in records}

    async def test_missing_uid_rejected(self, temp_db):
        with pytest.raises(ValueError):
            await pipeline.get_all("")


@pytest.mark.asyncio
class TestUnreadContent:

    async def test_rendered_texts(self, temp_db, world):
        _enable_all()

        contents = {c.id: c for c in await pipeline.get_unread_content(UID)}

        assert contents["n-event"].title == "New event hosted by Chess Club"
        assert contents["n-event"].content.startswith("Blitz night / ")
        assert contents["n-event"].target_route == "EventScreen/ev-1"
        assert contents["n-general"].title == "General announcement"
        assert contents["n-general"].content == "Library closed on Friday"
        assert contents["n-club"].title == "News from Chess Club"
        assert contents["n-club"].target_route == "SingleNews/news-2"
        assert contents["n-member"].content == "Aino Virtanen has requested to join Chess Club"
        assert contents["n-member"].target_route == "ClubMemberRequestScreen/club-1"
        assert contents["n-welcome"].title == "Welcome to Chess Club"
        assert contents["n-join"].content == "Aino Virtanen has requested to join Blitz night"
        assert contents["n-join"].target_route == "EventParticipantRequestScreen/ev-1"
        assert contents["n-accepted"].content == "Your request to join Blitz night was accepted"

    async def test_past_event_announcement_dropped(self, temp_db, world):
        _enable(NotificationSetting.EVENT_NEW)

        contents = await pipeline.get_unread_content(UID)

        assert [c.id for c in contents] == ["n-event"]

    async def test_missing_entity_dropped(self, temp_db, world):
        _enable(NotificationSetting.NEWS_GENERAL)
        world.tables["news"].clear()

        assert await pipeline.get_unread_content(UID) == []

    async def test_malformed_linked_row_dropped(self, temp_db, world):
        _enable(NotificationSetting.NEWS_GENERAL, NotificationSetting.EVENT_REQUEST_ACCEPTED)
        world.get("events", "ev-1")["date"] = None

        contents = await pipeline.get_unread_content(UID)

        assert [c.id for c in contents] == ["n-general"]

    async def test_sorted_newest_first(self, temp_db, world):
        _enable_all()

        contents = await pipeline.get_unread_content(UID)

        assert [c.id for c in contents][:3] == ["n-event", "n-general", "n-club"]
        dates = [c.date for c in contents]
        assert dates == sorted(dates, reverse=True)

    async def test_category_attached(self, temp_db, world):
        _enable(NotificationSetting.NEWS_CLUB)

        contents = await pipeline.get_unread_content(UID)

        assert contents[0].category is NotificationSetting.NEWS_CLUB


@pytest.mark.asyncio
class TestReadState:

    async def test_mark_read_removes_from_unread(self, temp_db, world):
        _enable(NotificationSetting.NEWS_CLUB)

        assert await pipeline.mark_read("n-club", UID) is True

        assert await pipeline.get_unread(UID) == []
        assert world.get("notifications", "n-club")["read_by"] == [UID]

    async def test_mark_read_twice_is_idempotent(self, temp_db, world):
        await pipeline.mark_read("n-club", UID)
        await pipeline.mark_read("n-club", UID)

        assert world.get("notifications", "n-club")["read_by"] == [UID]

    async def test_mark_read_missing_notification(self, temp_db, world):
        assert await pipeline.mark_read("n-nope", UID) is False

    async def test_mark_read_remote_failure(self, temp_db, world):
        world.failing.add("notifications")
        assert await pipeline.mark_read("n-club", UID) is False

    async def test_mark_all_read(self, temp_db, world):
        _enable_all()
        unread = await pipeline.get_unread(UID)

        count = await pipeline.mark_all_read([r.id for r in unread] + ["n-nope"], UID)

        assert count == len(unread)
        assert await pipeline.get_unread(UID) == []

    async def test_reset_all_read(self, temp_db, world):
        await pipeline.mark_read("n-club", UID)

        count = await pipeline.reset_all_read(UID)

        assert count == 2
        assert world.get("notifications", "n-club")["read_by"] == []
        assert world.get("notifications", "n-read")["read_by"] == []
