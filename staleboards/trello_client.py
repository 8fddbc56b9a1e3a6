"""Client for reading boards, actions and members from the Trello REST API."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from staleboards import __version__
from staleboards.config import DEFAULT_BASE_URL
from staleboards.errors import ConfigError, TrelloAPIError
from staleboards.models import Board, BoardAction, BoardMember

REDACTED = "***REDACTED***"


class TrelloClient:
    """Client for the three Trello endpoints the audit reads.

    Every call is a single GET: no pagination, batching or retries. Any failure
    raises TrelloAPIError.
    """

    def __init__(
        self,
        api_key: str,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        on_request: Optional[Callable[[str], None]] = None,
        debug_mode: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        if not all([api_key, api_token]):
            self.logger.critical(
                "Missing required Trello credentials at client initialization."
            )
            raise ConfigError("Missing required Trello API key or token")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_token = api_token
        self.timeout = timeout
        self.on_request = on_request
        self.debug_mode = debug_mode
        self.session = session or requests.Session()
        self.request_count = 0
        self._setup_session()

    def _setup_session(self) -> None:
        """Set default headers. No retry adapter is mounted."""
        self.session.headers.update(
            {
                "User-Agent": f"stale-board-audit/{__version__}",
                "Accept": "application/json",
            }
        )

    def _log_api_call(
        self,
        method: str,
        url: str,
        response: Optional[requests.Response] = None,
    ) -> None:
        """Log API calls in debug mode, with credentials stripped from the URL."""
        if not self.debug_mode:
            return

        log_data: Dict[str, Any] = {
            "method": method,
            "url": url,
            "params": {"key": REDACTED, "token": REDACTED},
            "status_code": response.status_code if response is not None else None,
            "response_body": None,
        }
        if response is not None:
            log_data["response_body"] = response.text[:1000]

        self.logger.debug(f"Trello API Call: {json.dumps(log_data, indent=2, default=str)}")

    def _get_json_list(self, path: str) -> List[Any]:
        """Perform one authenticated GET and decode a JSON array from the body."""
        url = f"{self.base_url}/{path}"
        params = {"key": self.api_key, "token": self.api_token}

        self.request_count += 1
        if self.on_request is not None:
            self.on_request(path)

        self.logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Network error calling Trello {path}: {str(e)}")
            raise TrelloAPIError(f"Request to {path} failed: {e}", path) from e

        self._log_api_call("GET", url, response=response)

        if not response.ok:
            self.logger.error(
                f"Trello request {path} failed with status {response.status_code}"
            )
            self.logger.debug(f"Raw failure response: {response.text[:500]}")
            raise TrelloAPIError(
                f"Request to {path} failed with status {response.status_code}",
                path,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"Failed to parse JSON from Trello {path}: {str(e)}")
            self.logger.debug(f"Raw response text: {response.text[:200]}")
            raise TrelloAPIError(
                f"Response from {path} is not valid JSON",
                path,
                status_code=response.status_code,
            ) from e

        if not isinstance(data, list):
            self.logger.error(
                f"Expected a list from Trello {path}, got {type(data).__name__}"
            )
            raise TrelloAPIError(
                f"Expected a list from {path}, got {type(data).__name__}",
                path,
                status_code=response.status_code,
            )
        return data

    def get_organization_boards(self, org: str) -> List[Board]:
        """Get every board owned by an organization."""
        path = f"organizations/{quote(org, safe='')}/boards"
        boards = [Board.from_api(record, path) for record in self._get_json_list(path)]
        self.logger.info(f"Fetched {len(boards)} boards for organization {org}.")
        return boards

    def get_board_actions(self, board_id: str) -> List[BoardAction]:
        """Get a board's action history."""
        path = f"boards/{quote(board_id, safe='')}/actions"
        return [BoardAction.from_api(record, path) for record in self._get_json_list(path)]

    def get_board_members(self, board_id: str) -> List[BoardMember]:
        """Get a board's members in the order Trello returns them."""
        path = f"boards/{quote(board_id, safe='')}/members"
        return [BoardMember.from_api(record, path) for record in self._get_json_list(path)]
