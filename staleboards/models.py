"""Data models for the application."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from staleboards.errors import TrelloAPIError

PERMISSION_PRIVATE = "private"
PERMISSION_ORG = "org"
PERMISSION_PUBLIC = "public"


def _require_record(record: Any, kind: str, path: str) -> Dict[str, Any]:
    if not isinstance(record, dict):
        raise TrelloAPIError(
            f"Expected a {kind} object, got {type(record).__name__}", path
        )
    return record


def _require_str(record: Dict[str, Any], key: str, kind: str, path: str) -> str:
    value = record.get(key)
    if not isinstance(value, str):
        raise TrelloAPIError(f"{kind} record is missing string field '{key}'", path)
    return value


@dataclass(frozen=True)
class Board:
    """Model for a Trello board."""

    id: str
    url: str
    closed: bool = False
    permission_level: str = ""

    @classmethod
    def from_api(cls, record: Any, path: str = "") -> "Board":
        record = _require_record(record, "board", path)
        prefs = record.get("prefs") or {}
        if not isinstance(prefs, dict):
            raise TrelloAPIError("board 'prefs' field is not an object", path)
        return cls(
            id=_require_str(record, "id", "board", path),
            url=_require_str(record, "url", "board", path),
            closed=bool(record.get("closed", False)),
            permission_level=str(prefs.get("permissionLevel") or ""),
        )


@dataclass(frozen=True)
class BoardAction:
    """Model for an entry in a board's action history."""

    type: str
    date: str

    @classmethod
    def from_api(cls, record: Any, path: str = "") -> "BoardAction":
        # A missing type counts as activity; a missing date only matters if
        # the action is the one whose date gets parsed.
        record = _require_record(record, "action", path)
        return cls(
            type=str(record.get("type") or ""),
            date=str(record.get("date") or ""),
        )


@dataclass(frozen=True)
class BoardMember:
    """Model for a board member."""

    username: str

    @classmethod
    def from_api(cls, record: Any, path: str = "") -> "BoardMember":
        record = _require_record(record, "member", path)
        return cls(username=_require_str(record, "username", "member", path))


@dataclass
class StaleBoardReport:
    """A stale board and the usernames of its members."""

    board: Board
    usernames: List[str] = field(default_factory=list)
