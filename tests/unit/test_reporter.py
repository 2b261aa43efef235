from __future__ import annotations

import csv
import io
from pathlib import Path

from lead_import.models.import_outcome import ErrorDetail, ImportOutcome
from lead_import.models.row_data import ErrorRow
from lead_import.services.reporter import (
    collect_error_details,
    preview_errors,
    render_error_report,
    render_summary_line,
    write_error_report,
)


def _details(n: int) -> list[ErrorDetail]:
    return [ErrorDetail(i, f"Lead {i}", f"problem {i}") for i in range(1, n + 1)]


def test_summary_line():
    assert (
        render_summary_line(ImportOutcome(3, 2, 1), skipped_rows=4)
        == "SUMMARY submitted=3 imported=2 failed=1 skipped_rows=4"
    )


def test_collect_error_details_orders_rows_then_store():
    rows = [ErrorRow(2, ("", "x"), "bad 2", ""), ErrorRow(5, ("Bob", "y"), "bad 5", "Bob")]
    outcome = ImportOutcome(3, 0, 3, [ErrorDetail(0, "All", "Bulk import failed: x")])
    details = collect_error_details(rows, outcome)
    assert [d.row_number for d in details] == [2, 5, 0]
    assert details[1].identifying_name == "Bob"
    assert collect_error_details(rows) == details[:2]


def test_preview_limits_to_five():
    lines = preview_errors(_details(7))
    assert len(lines) == 6
    assert lines[0] == "Row 1 (Lead 1): problem 1"
    assert lines[-1] == "And 2 more rows with errors..."
    assert preview_errors([ErrorDetail(3, "", "x")]) == ["Row 3 (-): x"]


def test_report_format_quotes_every_field():
    report = render_error_report([ErrorDetail(1, "Jane", 'Invalid status "X" for row 1.')])
    assert report == 'RowNumber,LeadName,Error\n"1","Jane","Invalid status ""X"" for row 1."\n'


def test_report_without_details_is_header_only():
    assert render_error_report([]) == "RowNumber,LeadName,Error\n"


def test_report_parses_back_in_order():
    details = [ErrorDetail(4, "Smith, John", "a, b"), ErrorDetail(9, "", "line\nbreak")]
    parsed = list(csv.reader(io.StringIO(render_error_report(details))))
    assert parsed[0] == ["RowNumber", "LeadName", "Error"]
    assert parsed[1:] == [["4", "Smith, John", "a, b"], ["9", "", "line\nbreak"]]


def test_write_error_report(tmp_path: Path):
    path = write_error_report(_details(2), tmp_path / "out" / "errors.csv")
    assert path.read_text(encoding="utf-8").count("\n") == 3
