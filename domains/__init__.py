"""Domain modules for the Hobby Clubs notifier."""
