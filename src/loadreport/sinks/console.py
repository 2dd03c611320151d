from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.table import Table
from rich.text import Text

from loadreport.common.models import RunSnapshot
from loadreport.stats.decoder import SnapshotDecodeError, decode

COLUMNS = [
    "Type",
    "Name",
    "# requests",
    "# fails",
    "Median",
    "Average",
    "Min",
    "Max",
    "Content Size",
    "# reqs/sec",
    "# fails/sec",
]

TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def summary_line(snapshot: RunSnapshot, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return (
        f"Current time: {now.strftime(TIME_FORMAT)}, "
        f"Users: {snapshot.user_count}, "
        f"Total RPS: {snapshot.total_rps}, "
        f"Total Fail Ratio: {snapshot.total_fail_ratio * 100:.1f}%"
    )


def render_rows(snapshot: RunSnapshot) -> List[List[str]]:
    rows: List[List[str]] = []
    for stat in snapshot.stats:
        rows.append(
            [
                stat.method,
                stat.name,
                str(stat.num_requests),
                str(stat.num_failures),
                str(stat.median_response_time),
                f"{stat.avg_response_time:.2f}",
                str(stat.min_response_time),
                str(stat.max_response_time),
                str(stat.avg_content_length),
                str(stat.current_rps),
                str(stat.current_fail_per_sec),
            ]
        )
    return rows


def build_table(rows: List[List[str]]) -> Table:
    """
    Stats table laid out at its natural width.

    The width is pinned so a narrow or piped console never shrinks or
    ellipsizes the fixed column labels or the numbers.
    """
    widths = [cell_len(header) for header in COLUMNS]
    for row in rows:
        widths = [max(width, cell_len(cell)) for width, cell in zip(widths, row)]

    table = Table(box=box.ASCII, show_lines=False)
    for header in COLUMNS:
        table.add_column(header, min_width=cell_len(header), overflow="fold")
    for row in rows:
        # names come from user scripts; never interpret them as markup
        table.add_row(*(Text(cell) for cell in row))
    # one padding cell each side, plus the vertical rules
    table.width = sum(width + 2 for width in widths) + len(COLUMNS) + 1
    return table


class ConsoleSink:
    """Prints a summary line and a stats table on every tick."""

    def __init__(
        self,
        console: Console | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._console = console or Console(highlight=False)
        self._logger = logger or logging.getLogger(__name__)

    def on_start(self) -> None:
        pass

    def on_stop(self) -> None:
        pass

    def on_event(self, raw_event: Mapping[str, Any]) -> None:
        try:
            snapshot = decode(raw_event)
        except SnapshotDecodeError as exc:
            self._logger.warning(
                "console_sink_decode_failed",
                extra={"field": exc.field, "error": exc.message},
            )
            return

        table = build_table(render_rows(snapshot))
        self._console.print(Text(summary_line(snapshot)), soft_wrap=True)
        self._console.print(table, crop=False)
        self._console.print()
