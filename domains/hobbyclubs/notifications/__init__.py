"""In-app notification aggregation and polling."""

from .pipeline import get_all, get_unread_content, mark_read, mark_all_read, reset_all_read
from .poller import PollingService, TickOutcome

__all__ = [
    "get_all",
    "get_unread_content",
    "mark_read",
    "mark_all_read",
    "reset_all_read",
    "PollingService",
    "TickOutcome",
]
