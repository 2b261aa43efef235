from __future__ import annotations

import logging
from pathlib import Path

import pytest

from lead_import.csv.reader import MIN_LINES_MESSAGE, CsvStructureError, parse_csv_text, read_csv_file
from lead_import.models.target_field import LEAD_FIELDS
from lead_import.services.column_mapper import propose_mapping
from lead_import.services.row_validator import validate_rows


def test_headers_and_rows_are_parsed():
    data = parse_csv_text("name,email\nJane,jane@x.com\nBob,bob@x.com\n", source_name="x.csv")
    assert data.source_name == "x.csv"
    assert data.headers == ["name", "email"]
    assert [r.row_number for r in data.rows] == [1, 2]
    assert data.rows[1].cells == ("Bob", "bob@x.com")


def test_quoted_commas_do_not_shift_columns():
    data = parse_csv_text('name,email,notes\n"Smith, John",j@x.com,"a, b"\n')
    assert data.rows[0].cells == ("Smith, John", "j@x.com", "a, b")


def test_bom_whitespace_and_blank_lines():
    text = "\ufeff  name , email \n\n  Jane ,jane@x.com\n , \n\nBob,bob@x.com\n"
    data = parse_csv_text(text)
    assert data.headers == ["name", "email"]
    assert [r.cells for r in data.rows] == [("Jane", "jane@x.com"), ("", ""), ("Bob", "bob@x.com")]
    assert [r.row_number for r in data.rows] == [1, 2, 3]


def test_na_like_strings_are_kept():
    data = parse_csv_text("name,notes\nNA,null\n")
    assert data.rows[0].cells == ("NA", "null")


def test_short_rows_padded_long_rows_truncated(caplog):
    with caplog.at_level(logging.WARNING):
        data = parse_csv_text("name,email\nJane\nBob,bob@x.com,extra,more\n")
    assert data.rows[0].cells == ("Jane", "")
    assert data.rows[1].cells == ("Bob", "bob@x.com")
    assert "extra cells dropped" in caplog.text


@pytest.mark.parametrize("text", ["", "   \n\n", "name,email\n", "name,email\n   \n\n"])
def test_fewer_than_two_lines_rejected(text):
    with pytest.raises(CsvStructureError) as ei:
        parse_csv_text(text)
    assert str(ei.value) == MIN_LINES_MESSAGE


def test_blank_header_rejected():
    with pytest.raises(CsvStructureError, match="blank header"):
        parse_csv_text("name,,email\na,b,c\n")


def test_duplicate_header_rejected():
    with pytest.raises(CsvStructureError, match="duplicate header"):
        parse_csv_text("name,email,name\na,b,c\n")


def test_sample_zips_headers():
    data = parse_csv_text("name,email\nA,a@x.com\nB,b@x.com\n")
    assert data.sample(1) == [{"name": "A", "email": "a@x.com"}]


def test_read_csv_file(tmp_path: Path):
    f = tmp_path / "leads.csv"
    f.write_bytes("\ufeffname,email\nJosé,jose@x.com\n".encode("utf-8"))
    data = read_csv_file(f)
    assert data.source_name == "leads.csv"
    assert data.headers == ["name", "email"]
    assert data.rows[0].cells == ("José", "jose@x.com")


def test_read_csv_file_rejects_other_extensions(tmp_path: Path):
    f = tmp_path / "leads.xlsx"
    f.write_bytes(b"")
    with pytest.raises(CsvStructureError, match="Please upload a CSV file"):
        read_csv_file(f)


def test_read_csv_file_missing(tmp_path: Path):
    with pytest.raises(CsvStructureError, match="cannot read"):
        read_csv_file(tmp_path / "missing.csv")


def test_delimiter_only_row_is_kept_as_data_row():
    data = parse_csv_text("name,email\nJane,j@x.com\n,\nBob,b@x.com\n")
    assert [(r.row_number, r.cells) for r in data.rows] == [
        (1, ("Jane", "j@x.com")),
        (2, ("", "")),
        (3, ("Bob", "b@x.com")),
    ]

    mapping = propose_mapping(data.headers, LEAD_FIELDS).freeze()
    result = validate_rows(mapping, LEAD_FIELDS, data.rows)
    assert result.total_rows == 3
    assert [r.row_number for r in result.valid] == [1, 3]
    [err] = result.errors
    assert err.row_number == 2
    assert "Missing required value for name in row 2." in err.error_message


def test_header_plus_delimiter_only_row_is_one_data_row():
    data = parse_csv_text("name,email\n,\n")
    assert [r.cells for r in data.rows] == [("", "")]
