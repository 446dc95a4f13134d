"""Control surface for event reminders and in-app notifications."""

import threading
from contextlib import contextmanager
from typing import Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from . import preferences
from .alerts import AlertSink
from .models import NotificationContent, NotificationSetting, ReminderOffset
from .notifications import pipeline
from .notifications.poller import PollingService
from .reminders import reconciler
from .reminders.executor import execute_event_alarm
from .reminders.reconciler import ResyncResult
from .reminders.scheduler import WakeScheduler

OFFSET_BY_SETTING = {offset.setting: offset for offset in ReminderOffset}


def parse_setting(setting: Union[NotificationSetting, str]) -> NotificationSetting:
    """Accept a NotificationSetting or its name (case-insensitive)."""
    if isinstance(setting, NotificationSetting):
        return setting
    try:
        return NotificationSetting[str(setting).strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown notification setting: {setting}") from None


class NotificationCenter:
    """Owns the wake scheduler, the polling service and the shared pause flag."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        send_alert: AlertSink,
        interval: Optional[float] = None
    ):
        self.send_alert = send_alert
        self.pause_flag = threading.Event()
        self.wake_scheduler = WakeScheduler(scheduler, self._on_wake)
        self.poller = PollingService(send_alert, self.pause_flag, interval)
        self._uid: Optional[str] = None

    @property
    def uid(self) -> Optional[str]:
        return self._uid

    def _require_uid(self) -> str:
        if not self._uid:
            raise ValueError("NotificationCenter has not been started for a user")
        return self._uid

    async def _on_wake(self, payload: dict) -> None:
        await execute_event_alarm(payload, self.send_alert)

    def start(self, uid: str) -> None:
        """Re-arm stored reminder wakes and start notification polling for ``uid``."""
        if not uid:
            raise ValueError("start requires a user id")
        self._uid = uid
        reconciler.rearm_stored_alarms(self.wake_scheduler)
        self.poller.start(uid)

    async def stop(self) -> None:
        await self.poller.stop()

    async def resync(self) -> ResyncResult:
        """Re-derive reminder alarms from the remote events."""
        return await reconciler.resync(self.wake_scheduler, self._require_uid())

    async def set_category_enabled(self, setting: Union[NotificationSetting, str], enabled: bool) -> None:
        """Persist a notification toggle; reminder toggles also update alarms."""
        setting = parse_setting(setting)
        offset = OFFSET_BY_SETTING.get(setting)

        if offset is None:
            preferences.set_bool(setting.name, enabled)
        elif enabled and self._uid is None:
            # Applied by the first resync after start
            preferences.set_bool(setting.name, enabled)
        else:
            await reconciler.set_reminder_enabled(self.wake_scheduler, self._uid, offset, enabled)

        logger.info(f"Notification setting {setting.name} -> {'on' if enabled else 'off'}")

    def settings(self) -> dict[NotificationSetting, bool]:
        """Every notification setting with its current value."""
        return {setting: preferences.get_bool(setting.name) for setting in NotificationSetting}

    async def unread(self) -> list[NotificationContent]:
        return await pipeline.get_unread_content(self._require_uid())

    async def mark_as_read(self, notification_id: str) -> bool:
        return await pipeline.mark_read(notification_id, self._require_uid())

    async def mark_all_as_read(self, notification_ids: list[str]) -> int:
        with self._paused():
            return await pipeline.mark_all_read(notification_ids, self._require_uid())

    async def reset_all_read(self) -> int:
        with self._paused():
            return await pipeline.reset_all_read(self._require_uid())

    def set_paused(self, paused: bool) -> None:
        if paused:
            self.pause_flag.set()
        else:
            self.pause_flag.clear()
        logger.info(f"Notification delivery {'paused' if paused else 'resumed'}")

    @contextmanager
    def _paused(self):
        """Pause delivery for a bulk operation, restoring the previous state after."""
        was_paused = self.pause_flag.is_set()
        self.pause_flag.set()
        try:
            yield
        finally:
            if not was_paused:
                self.pause_flag.clear()
