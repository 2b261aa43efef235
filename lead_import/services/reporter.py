from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from pathlib import Path

import pandas as pd

from ..models.import_outcome import ErrorDetail, ImportOutcome
from ..models.row_data import ErrorRow

"""Result reporting for the lead import.

- SUMMARY line (counts of one run)
- first-N preview of error rows for the review/result output
- downloadable CSV error report: header ``RowNumber,LeadName,Error`` then one
  line per error, every field double-quoted ("" escapes an embedded quote)

Read-only: nothing here touches the store.
"""

__all__ = [
    "REPORT_HEADER",
    "PREVIEW_LIMIT",
    "collect_error_details",
    "render_summary_line",
    "preview_errors",
    "render_error_report",
    "write_error_report",
]

REPORT_HEADER = ("RowNumber", "LeadName", "Error")
PREVIEW_LIMIT = 5


def collect_error_details(
    error_rows: Iterable[ErrorRow], outcome: ImportOutcome | None = None
) -> list[ErrorDetail]:
    """Validation errors (row order) followed by the store-level details."""
    details = [ErrorDetail.from_error_row(r) for r in error_rows]
    if outcome is not None and outcome.error_details:
        details.extend(outcome.error_details)
    return details


def render_summary_line(outcome: ImportOutcome, skipped_rows: int = 0) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY submitted={n} imported={success} failed={error} skipped_rows={skipped}

    skipped_rows counts rows rejected by validation (never submitted), so
    imported + failed == submitted always holds.

    Examples:
        >>> render_summary_line(ImportOutcome(3, 2, 1), skipped_rows=4)
        'SUMMARY submitted=3 imported=2 failed=1 skipped_rows=4'
    """
    return (
        f"SUMMARY submitted={outcome.submitted_count} "
        f"imported={outcome.success_count} "
        f"failed={outcome.error_count} "
        f"skipped_rows={skipped_rows}"
    )


def preview_errors(details: Sequence[ErrorDetail], limit: int = PREVIEW_LIMIT) -> list[str]:
    lines = []
    for d in details[:limit]:
        name = d.identifying_name or "-"
        lines.append(f"Row {d.row_number} ({name}): {d.error_message}")
    if len(details) > limit:
        lines.append(f"And {len(details) - limit} more rows with errors...")
    return lines


def render_error_report(details: Sequence[ErrorDetail]) -> str:
    """Serialize ``details`` as the downloadable CSV error report."""
    header = ",".join(REPORT_HEADER) + "\n"
    if not details:
        return header
    df = pd.DataFrame(
        [(str(d.row_number), d.identifying_name, d.error_message) for d in details],
        columns=list(REPORT_HEADER),
    )
    body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return header + body


def write_error_report(details: Sequence[ErrorDetail], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_error_report(details), encoding="utf-8")
    return path
