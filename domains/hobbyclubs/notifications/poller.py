"""Notification polling loop with daily digest and incremental alerts.

Each tick fetches the unread notifications and, unless paused:
1. Publishes the unread list to every subscriber
2. On the first tick of a calendar day, sends one digest alert with the count
3. Otherwise, sends one alert for the newest item if it was not alerted before

The pause flag gates only delivery and marker updates; ticks keep running.
Ticks never overlap: the next delay starts when the previous tick finishes.
"""

import asyncio
import inspect
import threading
from datetime import date, datetime
from enum import Enum
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from logger import logger
from .. import config, preferences
from ..alerts import Alert, AlertKind, AlertSink
from ..models import NotificationContent
from . import pipeline

UnreadListener = Callable[[list[NotificationContent]], Optional[Awaitable[None]]]


class TickOutcome(Enum):
    EMPTY = "empty"
    PAUSED = "paused"
    DIGEST = "digest"
    INCREMENTAL = "incremental"
    UNCHANGED = "unchanged"


def digest_alert(count: int) -> Alert:
    return Alert(
        kind=AlertKind.DIGEST,
        title="Good to have you back!",
        content=f"You have {count} unread notifications. Press here to see them",
        target_route=config.ROUTE_NOTIFICATIONS,
    )


def incremental_alert(content: NotificationContent) -> Alert:
    return Alert(
        kind=AlertKind.INCREMENTAL,
        title=content.title,
        content=content.content,
        target_route=content.target_route,
        notification_id=content.id,
    )


class PollingService:
    """Single background worker that drives the notification pipeline.

    Usage:
        poller = PollingService(send_alert, pause_flag)
        poller.subscribe(update_badge)
        poller.start(uid)
        ...
        await poller.stop()
    """

    def __init__(
        self,
        send_alert: AlertSink,
        pause_flag: Optional[threading.Event] = None,
        interval: Optional[float] = None,
        fetch_unread: Optional[Callable[[str], Awaitable[list[NotificationContent]]]] = None
    ):
        """
        Args:
            send_alert: Where digest and incremental alerts go
            pause_flag: Shared flag; while set, nothing is published or alerted
            interval: Seconds between the end of one tick and the next (default from config)
            fetch_unread: Unread content source (default: the aggregation pipeline)
        """
        self.send_alert = send_alert
        self.pause_flag = pause_flag if pause_flag is not None else threading.Event()
        self.interval = interval if interval is not None else config.POLL_INTERVAL_SECONDS
        self._fetch_unread = fetch_unread or pipeline.get_unread_content

        self._listeners: list[UnreadListener] = []
        self._uid: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def uid(self) -> Optional[str]:
        return self._uid

    def subscribe(self, listener: UnreadListener) -> Callable[[], None]:
        """Receive every published unread list; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self, uid: str) -> None:
        """Start polling for ``uid`` (Stopped -> Running). Must run inside an event loop."""
        if not uid:
            raise ValueError("Polling requires a user id")
        if self.is_running:
            logger.debug("Notification polling already running")
            return

        self._uid = uid
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event), name="notification-polling")
        logger.info(f"Started notification polling (every {self.interval}s)")

    async def stop(self) -> None:
        """Stop polling (Running -> Stopped); an in-flight tick is allowed to finish."""
        if self._task is None:
            return

        self._stop_event.set()
        task, self._task = self._task, None
        await task
        logger.info("Stopped notification polling")

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Notification poll failed: {e}")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def _publish(self, contents: list[NotificationContent]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(list(contents))
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Unread listener failed: {e}")
        logger.debug(f"Published {len(contents)} unread notifications")

    async def tick(self, uid: Optional[str] = None, today: Optional[date] = None) -> TickOutcome:
        """Run one poll cycle.

        Args:
            uid: User id (defaults to the one given to ``start``)
            today: Calendar day for the digest decision (defaults to today, local time)
        """
        uid = uid or self._uid
        if not uid:
            raise ValueError("Polling requires a user id")

        contents = await self._fetch_unread(uid)
        if not contents:
            return TickOutcome.EMPTY

        # Read fresh every tick; a bulk operation may have started mid-fetch
        if self.pause_flag.is_set():
            logger.debug("Notification polling paused, skipping delivery")
            return TickOutcome.PAUSED

        await self._publish(contents)

        today = today or datetime.now(ZoneInfo(config.LOCAL_TIMEZONE)).date()
        newest = contents[0]

        if preferences.get_str(config.LAST_SEEN_DATE_KEY) != today.isoformat():
            await self.send_alert(digest_alert(len(contents)))
            preferences.set_str(config.LAST_SEEN_DATE_KEY, today.isoformat())
            preferences.set_str(config.LAST_NOTIFICATION_ID_KEY, newest.id)
            logger.info(f"Sent daily digest ({len(contents)} unread)")
            return TickOutcome.DIGEST

        if preferences.get_str(config.LAST_NOTIFICATION_ID_KEY) != newest.id:
            await self.send_alert(incremental_alert(newest))
            preferences.set_str(config.LAST_NOTIFICATION_ID_KEY, newest.id)
            logger.info(f"Sent alert for notification {newest.id}")
            return TickOutcome.INCREMENTAL

        return TickOutcome.UNCHANGED
