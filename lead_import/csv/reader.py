from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ..models.row_data import RawRecord

"""CSV reader for the lead import.

- 1行目をヘッダ行、2行目以降をデータ行として扱う
- quote 対応の CSV パース (pandas)。セル内カンマで列がずれない
- 全セル str のまま読む (dtype=str, keep_default_na=False): "NA" 等も文字列維持
- UTF-8 BOM 除去、空行/空白のみの行はスキップ (区切りのみの行は残す)、セルは前後空白 trim
- 列数不足の行は "" で補完、列数超過の行は切り詰めて WARN

Structural problems (unreadable file, no data row, blank/duplicate header)
raise CsvStructureError before any mapping happens.
"""

__all__ = [
    "CsvStructureError",
    "CsvData",
    "parse_csv_text",
    "read_csv_file",
]

logger = logging.getLogger(__name__)

MIN_LINES_MESSAGE = "CSV file must contain at least one header row and one data row."


class CsvStructureError(Exception):
    """Raised when the file cannot be turned into a header row + data rows."""


@dataclass
class CsvData:
    source_name: str
    headers: list[str]
    rows: list[RawRecord]

    def sample(self, n: int = 3) -> list[dict[str, str]]:
        return [dict(zip(self.headers, r.cells, strict=False)) for r in self.rows[:n]]


def _header_width(text: str) -> int:
    first = pd.read_csv(
        io.StringIO(text), header=None, nrows=1, dtype=str, keep_default_na=False
    )
    return int(first.shape[1])


def parse_csv_text(text: str, source_name: str = "<text>") -> CsvData:
    """Parse delimited text into headers + RawRecords.

    Parameters
    ----------
    text: CSV 全文
    source_name: エラーログ/メッセージ用の名前 (通常ファイル名)
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    # 空行/空白のみの物理行だけを除去 ("," のような区切りのみの行はデータ行として残す)
    text = "".join(line for line in text.splitlines(keepends=True) if line.strip())
    if not text.strip():
        raise CsvStructureError(MIN_LINES_MESSAGE)

    try:
        width = _header_width(text)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise CsvStructureError(f"{source_name}: unreadable header row: {e}") from e

    overflow: list[int] = []

    def _truncate(bad_line: list[str]) -> list[str]:
        overflow.append(len(bad_line))
        return bad_line[:width]

    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_truncate,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise CsvStructureError(f"{source_name}: failed to parse CSV: {e}") from e

    if overflow:
        logger.warning(
            "%s: %d row(s) had more than %d cells; extra cells dropped",
            source_name,
            len(overflow),
            width,
        )

    df = df.fillna("")
    lines = [[str(v).strip() for v in raw] for raw in df.itertuples(index=False, name=None)]

    if len(lines) < 2:
        raise CsvStructureError(MIN_LINES_MESSAGE)

    headers = lines[0]
    blank = [i + 1 for i, h in enumerate(headers) if h == ""]
    if blank:
        raise CsvStructureError(f"{source_name}: blank header in column(s) {blank}")
    dups = sorted({h for h in headers if headers.count(h) > 1})
    if dups:
        raise CsvStructureError(f"{source_name}: duplicate header(s): {dups}")

    rows = [RawRecord(row_number=i, cells=tuple(cells)) for i, cells in enumerate(lines[1:], start=1)]
    logger.debug("%s: parsed headers=%s rows=%d", source_name, headers, len(rows))
    return CsvData(source_name=source_name, headers=headers, rows=rows)


def read_csv_file(path: Path) -> CsvData:
    """Read a .csv file from disk and parse it (UTF-8, BOM tolerated)."""
    if path.suffix.lower() != ".csv":
        raise CsvStructureError(f"Invalid file type: {path.name}. Please upload a CSV file.")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise CsvStructureError(f"cannot read {path}: {e}") from e
    return parse_csv_text(text, source_name=path.name)
