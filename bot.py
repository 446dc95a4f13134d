"""Hobby Clubs Notifier - Main Bot.

Delivers event reminders and club/news/request notifications for one user
to a Discord channel, and exposes notification settings as slash commands.
"""

import discord
from discord import app_commands
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import DISCORD_TOKEN, HOBBYCLUBS_USER_ID, ALERTS_CHANNEL_ID
from domains.hobbyclubs import NotificationCenter, NotificationSetting, parse_setting
from domains.hobbyclubs.alerts import ChannelAlertSink

# Initialize bot
intents = discord.Intents.default()
bot = commands.Bot(command_prefix="/", intents=intents)

# Initialize scheduler (reminder wakes live here)
scheduler = AsyncIOScheduler()

center = NotificationCenter(scheduler, ChannelAlertSink(bot, ALERTS_CHANNEL_ID))


async def update_unread_badge(unread):
    """Show the unread count as the bot's presence."""
    try:
        await bot.change_presence(activity=discord.Game(f"{len(unread)} unread"))
    except Exception as e:
        logger.warning(f"Failed to update unread badge: {e}")


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    logger.info(f"Logged in as {bot.user}")

    # Sync slash commands with Discord
    try:
        synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash commands")
    except Exception as e:
        logger.error(f"Failed to sync slash commands: {e}")

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")

    if not HOBBYCLUBS_USER_ID:
        logger.error("HOBBYCLUBS_USER_ID not set, notifications disabled")
        return

    if center.uid is None:
        center.poller.subscribe(update_unread_badge)
        center.start(HOBBYCLUBS_USER_ID)

    # Coming online is the foreground trigger for a reminder resync
    result = await center.resync()
    logger.info(f"Startup resync: created={result.created}, updated={result.updated}, deleted={result.deleted}, rearmed={result.rearmed}")


def _started() -> bool:
    return center.uid is not None


@bot.tree.command(name="notifications", description="List unread notifications")
async def cmd_notifications(interaction: discord.Interaction):
    """List unread notifications, newest first."""
    if not _started():
        await interaction.response.send_message("Notifications are not running.", ephemeral=True)
        return

    await interaction.response.defer()
    unread = await center.unread()

    if not unread:
        await interaction.followup.send("No unread notifications.")
        return

    lines = [f"**{len(unread)} unread:**\n"]
    for item in unread[:20]:
        lines.append(f"- **{item.title}** - {item.content}")
        lines.append(f"  `/read {item.id}`")

    await interaction.followup.send("\n".join(lines))


@bot.tree.command(name="read", description="Mark a notification as read")
@app_commands.describe(notification_id="The notification ID")
async def cmd_read(interaction: discord.Interaction, notification_id: str):
    if not _started():
        await interaction.response.send_message("Notifications are not running.", ephemeral=True)
        return

    if await center.mark_as_read(notification_id):
        await interaction.response.send_message("Marked as read.")
    else:
        await interaction.response.send_message("Notification not found.", ephemeral=True)


@bot.tree.command(name="read-all", description="Mark every unread notification as read")
async def cmd_read_all(interaction: discord.Interaction):
    if not _started():
        await interaction.response.send_message("Notifications are not running.", ephemeral=True)
        return

    await interaction.response.defer()
    unread = await center.unread()
    count = await center.mark_all_as_read([item.id for item in unread])
    await interaction.followup.send(f"Marked {count} notifications as read.")


@bot.tree.command(name="reset-read", description="Make all read notifications unread again")
async def cmd_reset_read(interaction: discord.Interaction):
    if not _started():
        await interaction.response.send_message("Notifications are not running.", ephemeral=True)
        return

    await interaction.response.defer()
    count = await center.reset_all_read()
    await interaction.followup.send(f"Reset {count} notifications.")


@bot.tree.command(name="reminder", description="Turn event reminders on or off")
@app_commands.describe(offset="How long before the event", enabled="On or off")
@app_commands.choices(offset=[
    app_commands.Choice(name="1 hour before", value="EVENT_HOUR_REMINDER"),
    app_commands.Choice(name="1 day before", value="EVENT_DAY_REMINDER"),
])
async def cmd_reminder(interaction: discord.Interaction, offset: app_commands.Choice[str], enabled: bool):
    await interaction.response.defer()
    await center.set_category_enabled(offset.value, enabled)
    await interaction.followup.send(f"{offset.name} reminders {'on' if enabled else 'off'}.")


@bot.tree.command(name="notify", description="Turn a notification category on or off")
@app_commands.describe(setting="Setting name, e.g. NEWS_CLUB", enabled="On or off")
async def cmd_notify(interaction: discord.Interaction, setting: str, enabled: bool):
    try:
        parsed = parse_setting(setting)
    except ValueError:
        names = ", ".join(s.name for s in NotificationSetting)
        await interaction.response.send_message(f"Unknown setting. Options: {names}", ephemeral=True)
        return

    await interaction.response.defer()
    await center.set_category_enabled(parsed, enabled)
    await interaction.followup.send(f"{parsed.title}: {'on' if enabled else 'off'}")


@bot.tree.command(name="settings", description="Show notification settings")
async def cmd_settings(interaction: discord.Interaction):
    lines = ["**Notification settings:**\n"]
    for setting, enabled in center.settings().items():
        lines.append(f"- {setting.title} (`{setting.name}`): {'on' if enabled else 'off'}")
    await interaction.response.send_message("\n".join(lines))


@bot.tree.command(name="resync", description="Resync event reminders")
async def cmd_resync(interaction: discord.Interaction):
    if not _started():
        await interaction.response.send_message("Notifications are not running.", ephemeral=True)
        return

    await interaction.response.defer()
    result = await center.resync()
    if result.aborted:
        await interaction.followup.send("Resync failed, events could not be fetched.")
        return
    await interaction.followup.send(
        f"Reminders synced: {result.created} created, {result.updated} updated, {result.deleted} deleted."
    )


@bot.tree.command(name="pause", description="Pause or resume notification alerts")
@app_commands.describe(paused="Pause or resume")
async def cmd_pause(interaction: discord.Interaction, paused: bool):
    center.set_paused(paused)
    await interaction.response.send_message(f"Notification alerts {'paused' if paused else 'resumed'}.")


if __name__ == "__main__":
    if not DISCORD_TOKEN:
        raise SystemExit("DISCORD_TOKEN not set")
    bot.run(DISCORD_TOKEN)
