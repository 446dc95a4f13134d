"""User-facing alerts and their delivery to a Discord channel."""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from logger import logger


class AlertKind(Enum):
    REMINDER = "reminder"
    DIGEST = "digest"
    INCREMENTAL = "incremental"


@dataclass
class Alert:
    kind: AlertKind
    title: str
    content: str
    target_route: str
    notification_id: Optional[str] = None


# Anything that can deliver an alert, e.g. ChannelAlertSink or a test double
AlertSink = Callable[[Alert], Awaitable[None]]


def format_alert(alert: Alert) -> str:
    """Render an alert as a Discord message."""
    return f"**{alert.title}**\n\n> {alert.content}\n`{alert.target_route}`"


class ChannelAlertSink:
    """Posts alerts to a fixed Discord channel."""

    def __init__(self, bot, channel_id: int):
        self.bot = bot
        self.channel_id = channel_id

    async def __call__(self, alert: Alert) -> None:
        try:
            channel = self.bot.get_channel(self.channel_id)
            if not channel:
                channel = await self.bot.fetch_channel(self.channel_id)

            await channel.send(format_alert(alert))
            logger.info(f"Sent {alert.kind.value} alert: {alert.title}")
        except Exception as e:
            logger.error(f"Failed to send {alert.kind.value} alert: {e}")
