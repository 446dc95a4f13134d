"""Global configuration for the Hobby Clubs notifier."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

# Supabase (remote document store)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Signed-in user whose reminders and notifications are tracked
HOBBYCLUBS_USER_ID = os.getenv("HOBBYCLUBS_USER_ID", "")

# Channel that receives reminder, digest and incremental alerts
ALERTS_CHANNEL_ID = int(os.getenv("HOBBYCLUBS_ALERTS_CHANNEL_ID", 0))

# Local data (SQLite database, logs)
DATA_DIR = Path(os.getenv("LOCALAPPDATA", ".")) / "hobbyclubs-notifier"
LOG_DIR = DATA_DIR / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_LEVEL = os.getenv("HOBBYCLUBS_LOG_LEVEL", "INFO")
