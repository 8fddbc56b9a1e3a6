"""Exceptions raised by the audit. Every one of them ends the run."""

from typing import Optional


class AuditError(Exception):
    """Base class for errors that abort an audit run."""


class ConfigError(AuditError):
    """Required configuration is missing or has the wrong type."""


class TrelloAPIError(AuditError):
    """A Trello request failed or returned a body we could not decode."""

    def __init__(self, message: str, path: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class TimestampParseError(AuditError):
    """An action timestamp did not match Trello's date format."""

    def __init__(self, value: str):
        super().__init__(f"Could not parse action timestamp {value!r}")
        self.value = value
