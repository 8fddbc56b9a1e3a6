import datetime

import pytest

from staleboards.errors import TrelloAPIError
from staleboards.models import Board, BoardAction, BoardMember

NOW = datetime.datetime(2026, 6, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)

_ENV_NAMES = [
    "KEY",
    "TOKEN",
    "ORG",
    "TRELLO_KEY",
    "TRELLO_TOKEN",
    "TRELLO_ORG",
    "TRELLO_BASE_URL",
    "TRELLO_REQUEST_TIMEOUT",
    "AUDIT_SETTINGS_STALE_AFTER_HOURS",
    "AUDIT_SETTINGS_IGNORED_ACTION_TYPES",
    "AUDIT_SETTINGS_PROGRESS_MARKER",
    "APP_SETTINGS_DEBUG_MODE",
    "APP_SETTINGS_LOG_LEVEL",
    "APP_SETTINGS_LOG_FILE_NAME",
]


def trello_date(days_ago: float) -> str:
    when = NOW - datetime.timedelta(days=days_ago)
    return when.strftime("%Y-%m-%dT%H:%M:%S.") + f"{when.microsecond // 1000:03d}Z"


def board(board_id: str, closed: bool = False, permission: str = "org") -> Board:
    return Board(
        id=board_id,
        url=f"https://trello.com/b/{board_id}",
        closed=closed,
        permission_level=permission,
    )


class FakeTrelloClient:
    """In-memory stand-in for TrelloClient that records every call."""

    def __init__(self, boards=None, actions=None, members=None, failures=None):
        self.boards = list(boards or [])
        self.actions = dict(actions or {})
        self.members = dict(members or {})
        self.failures = set(failures or [])
        self.calls = []

    def _record(self, path: str) -> None:
        self.calls.append(path)
        if path in self.failures:
            raise TrelloAPIError(f"Request to {path} failed with status 500", path, 500)

    def get_organization_boards(self, org):
        self._record(f"organizations/{org}/boards")
        return list(self.boards)

    def get_board_actions(self, board_id):
        self._record(f"boards/{board_id}/actions")
        return [BoardAction(type=t, date=d) for t, d in self.actions.get(board_id, [])]

    def get_board_members(self, board_id):
        self._record(f"boards/{board_id}/members")
        return [BoardMember(username=u) for u in self.members.get(board_id, [])]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch also undoes values a .env file adds later
    for name in _ENV_NAMES:
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path
