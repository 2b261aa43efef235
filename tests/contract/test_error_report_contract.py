from __future__ import annotations

import io
from pathlib import Path

import pandas as pd

from lead_import.csv.reader import parse_csv_text
from lead_import.models.import_outcome import ErrorDetail
from lead_import.models.target_field import LEAD_FIELDS
from lead_import.services.column_mapper import propose_mapping
from lead_import.services.reporter import (
    REPORT_HEADER,
    collect_error_details,
    render_error_report,
    write_error_report,
)
from lead_import.services.row_validator import validate_rows

"""Error report contract: one CSV line per rejected row, same order, parseable."""


def test_report_round_trips_validation_errors():
    data = parse_csv_text(
        "name,email,notes\n"
        ',a@x.com,"quoted ""note"""\n'
        "Bob,bad-email,x\n"
        "Ok,ok@x.com,fine\n"
        '"Smith, John",,y\n'
    )
    mapping = propose_mapping(data.headers, LEAD_FIELDS).freeze()
    result = validate_rows(mapping, LEAD_FIELDS, data.rows)
    details = collect_error_details(result.errors)

    df = pd.read_csv(io.StringIO(render_error_report(details)), dtype=str, keep_default_na=False)

    assert tuple(df.columns) == REPORT_HEADER
    assert len(df) == len(result.errors) == 3
    assert df["RowNumber"].tolist() == ["1", "2", "4"]
    assert df["LeadName"].tolist() == ["", "Bob", "Smith, John"]
    assert df["Error"].tolist() == [e.error_message for e in result.errors]


def test_report_file_encoding(tmp_path: Path):
    details = [ErrorDetail(1, "山田", "Missing required value for email in row 1.")]
    path = write_error_report(details, tmp_path / "r.csv")
    assert "山田" in path.read_text(encoding="utf-8")
