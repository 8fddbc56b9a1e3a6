"""Main entry point: print the stale boards of a Trello organization.

    $ export KEY=... TOKEN=... ORG=...
    $ python main.py
"""

import argparse
import datetime
import logging
import sys
from typing import List, Optional

from staleboards.audit import compute_cutoff, run_audit
from staleboards.config import DEFAULT_CONFIG_PATH, build_audit_config, load_app_config
from staleboards.errors import AuditError
from staleboards.logging_setup import setup_logging
from staleboards.report import ProgressPrinter, print_report
from staleboards.trello_client import TrelloClient

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stale-boards",
        description="List open, org-visible Trello boards with no recent activity.",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Optional YAML settings file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Log every API call to stderr"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    # Setup logging first so configuration problems are reported
    setup_logging(debug_mode=args.debug)

    # The cutoff is fixed for the whole run
    now = datetime.datetime.now(datetime.timezone.utc)
    progress: Optional[ProgressPrinter] = None

    try:
        config = build_audit_config(load_app_config(args.config))
        setup_logging(
            config.log_level,
            config.log_file_name,
            debug_mode=args.debug or config.debug_mode,
        )
        cutoff = compute_cutoff(now, config.stale_after_hours)

        progress = ProgressPrinter(config.progress_marker)
        client = TrelloClient(
            config.api_key,
            config.api_token,
            base_url=config.base_url,
            timeout=config.request_timeout,
            on_request=progress,
            debug_mode=args.debug or config.debug_mode,
        )
        reports = run_audit(client, config, cutoff)
    except AuditError as e:
        if progress is not None and progress.count:
            progress.finish()
        logger.critical(f"Audit aborted: {e}")
        return 1

    progress.finish()
    print_report(reports)
    logger.info(
        f"Reported {len(reports)} stale boards using {client.request_count} API calls."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
