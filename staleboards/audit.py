"""The stale board audit: list boards, classify staleness, attach members."""

import datetime
import logging
import re
from typing import Iterable, List, Optional, Sequence

from staleboards.config import (
    DEFAULT_IGNORED_ACTION_TYPES,
    DEFAULT_STALE_AFTER_HOURS,
    AuditConfig,
)
from staleboards.errors import TimestampParseError
from staleboards.models import (
    PERMISSION_ORG,
    Board,
    BoardAction,
    StaleBoardReport,
)

logger = logging.getLogger(__name__)

# Trello dates look like 2024-03-01T12:34:56.789Z; the fraction is optional.
ACTION_DATE_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?Z",
    re.ASCII,
)


def compute_cutoff(
    now: datetime.datetime, stale_after_hours: int = DEFAULT_STALE_AFTER_HOURS
) -> datetime.datetime:
    """Boards with no substantive action since the returned instant are stale."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    return now - datetime.timedelta(hours=stale_after_hours)


def parse_action_date(value: str) -> datetime.datetime:
    """Parse a Trello action timestamp into an aware UTC datetime.

    Raises:
        TimestampParseError: If value is not in Trello's date format
    """
    match = ACTION_DATE_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise TimestampParseError(value)

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    # Sub-microsecond digits are dropped
    fraction = (match.group(7) or "").ljust(6, "0")[:6]
    try:
        return datetime.datetime(
            year,
            month,
            day,
            hour,
            minute,
            second,
            int(fraction),
            tzinfo=datetime.timezone.utc,
        )
    except ValueError as e:
        raise TimestampParseError(value) from e


def is_audited_board(board: Board) -> bool:
    """Only open boards visible to the organization are audited."""
    return not board.closed and board.permission_level == PERMISSION_ORG


def list_audited_boards(client, org: str) -> List[Board]:
    """Fetch the organization's boards and drop closed or non-org boards."""
    boards = client.get_organization_boards(org)
    audited = []
    for board in boards:
        if is_audited_board(board):
            audited.append(board)
        else:
            logger.debug(
                f"Skipping board {board.id} (closed={board.closed}, permission={board.permission_level or 'unknown'})"
            )
    logger.info(f"{len(audited)} of {len(boards)} boards are open and org-visible.")
    return audited


def last_substantive_action(
    actions: Iterable[BoardAction],
    ignored_types: Sequence[str] = DEFAULT_IGNORED_ACTION_TYPES,
) -> Optional[BoardAction]:
    """Return the newest action that is not membership bookkeeping, if any.

    Bookkeeping actions are dropped first and never have their dates parsed.
    The rest are ordered newest-first by timestamp, so the result does not
    depend on the order the API returned them in.
    """
    substantive = [action for action in actions if action.type not in ignored_types]
    if not substantive:
        return None
    ordered = sorted(
        substantive, key=lambda action: parse_action_date(action.date), reverse=True
    )
    return ordered[0]


def is_stale(
    actions: Iterable[BoardAction],
    cutoff: datetime.datetime,
    ignored_types: Sequence[str] = DEFAULT_IGNORED_ACTION_TYPES,
) -> bool:
    """A board is stale when its last substantive action is older than cutoff.

    A board with no substantive action at all is stale.
    """
    last_action = last_substantive_action(actions, ignored_types)
    if last_action is None:
        return True
    return parse_action_date(last_action.date) < cutoff


def find_stale_boards(
    client,
    boards: Iterable[Board],
    cutoff: datetime.datetime,
    ignored_types: Sequence[str] = DEFAULT_IGNORED_ACTION_TYPES,
) -> List[Board]:
    """Fetch each board's history in turn and keep the stale boards."""
    stale = []
    for board in boards:
        actions = client.get_board_actions(board.id)
        if is_stale(actions, cutoff, ignored_types):
            logger.debug(f"Board {board.id} is stale ({len(actions)} actions checked).")
            stale.append(board)
    logger.info(f"Found {len(stale)} stale boards.")
    return stale


def enrich_with_members(client, boards: Iterable[Board]) -> List[StaleBoardReport]:
    """Pair each stale board with its members' usernames, in API order."""
    reports = []
    for board in boards:
        members = client.get_board_members(board.id)
        reports.append(
            StaleBoardReport(board=board, usernames=[m.username for m in members])
        )
    return reports


def run_audit(
    client, config: AuditConfig, cutoff: datetime.datetime
) -> List[StaleBoardReport]:
    """Run the three stages in order and return the complete report.

    Nothing partial is returned: any error from a stage propagates.
    """
    logger.info(
        f"Auditing organization {config.org} for boards idle since {cutoff.isoformat()}"
    )
    boards = list_audited_boards(client, config.org)
    stale_boards = find_stale_boards(
        client, boards, cutoff, config.ignored_action_types
    )
    return enrich_with_members(client, stale_boards)
