"""Hobby Clubs domain configuration - event reminders and in-app notifications."""

import os

from config import DATA_DIR

# Local SQLite database (alarm table + preference table)
LOCAL_DB = os.environ.get("HOBBYCLUBS_LOCAL_DB", str(DATA_DIR / "hobbyclubs.db"))

# Remote collections (Supabase tables)
EVENTS_COLLECTION = "events"
CLUBS_COLLECTION = "clubs"
NEWS_COLLECTION = "news"
USERS_COLLECTION = "users"
NOTIFICATIONS_COLLECTION = "notifications"

# HTTP timeout per remote request (seconds)
REMOTE_TIMEOUT = float(os.environ.get("HOBBYCLUBS_REMOTE_TIMEOUT", 10))

# Polling service
POLL_INTERVAL_SECONDS = float(os.environ.get("HOBBYCLUBS_POLL_INTERVAL", 10))
CATEGORY_FETCH_TIMEOUT = float(os.environ.get("HOBBYCLUBS_CATEGORY_TIMEOUT", 10))

# Dates in alert text and the digest's calendar day use this zone
LOCAL_TIMEZONE = os.environ.get("HOBBYCLUBS_TIMEZONE", "Europe/Helsinki")

# Preference keys for the polling markers
LAST_SEEN_DATE_KEY = "last_seen_date"
LAST_NOTIFICATION_ID_KEY = "last_notification_id"

# Navigation targets (deep-link routes in the app)
ROUTE_EVENT = "EventScreen"
ROUTE_NEWS = "SingleNews"
ROUTE_CLUB_PAGE = "ClubPageScreen"
ROUTE_CLUB_REQUESTS = "ClubMemberRequestScreen"
ROUTE_EVENT_REQUESTS = "EventParticipantRequestScreen"
ROUTE_NOTIFICATIONS = "NotificationScreen"
