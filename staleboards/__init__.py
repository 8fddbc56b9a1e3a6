"""Audit a Trello organization for stale boards."""

__version__ = "1.0.0"
