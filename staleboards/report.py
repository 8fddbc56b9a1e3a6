"""Console output: progress markers while fetching, then the report lines."""

import sys
from typing import Iterable, Optional, TextIO

from staleboards.models import StaleBoardReport


def format_report_line(report: StaleBoardReport) -> str:
    """Format one stale board as '<url>  (<user>, <user>)'."""
    return f"{report.board.url}  ({', '.join(report.usernames)})"


def print_report(
    reports: Iterable[StaleBoardReport], stream: Optional[TextIO] = None
) -> None:
    stream = stream or sys.stdout
    for report in reports:
        stream.write(format_report_line(report) + "\n")
    stream.flush()


class ProgressPrinter:
    """Writes one marker per remote call, flushing so progress shows live."""

    def __init__(self, marker: str = ".", stream: Optional[TextIO] = None):
        self.marker = marker
        self.stream = stream or sys.stdout
        self.count = 0

    def __call__(self, _path: str = "") -> None:
        self.count += 1
        if self.marker:
            self.stream.write(self.marker)
            self.stream.flush()

    def finish(self) -> None:
        """End the marker line so the report starts on a fresh line."""
        self.stream.write("\n")
        self.stream.flush()
