"""Read-only dashboard for the event feed runner."""
