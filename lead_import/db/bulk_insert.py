from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Single-statement bulk INSERT via psycopg2.extras.execute_values.

One import run = one INSERT statement: page_size is set to the row count so
execute_values never splits the batch into several statements. RETURNING *
gives back the rows actually persisted, which the import executor counts.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "bulk_insert",
    "quote_ident",
]

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of the execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def quote_ident(name: str) -> str:
    """Quote a table/column identifier; only plain identifiers are accepted."""
    if not _IDENT.match(name):
        raise BatchInsertError(f"invalid identifier: {name!r}")
    return f'"{name}"'


def bulk_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    returning: bool = True,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """INSERT all ``rows`` into ``table`` in one statement.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: 挿入先テーブル (識別子チェックあり)
    columns: 挿入列 (全行共通)
    rows: 列順に並んだ値
    returning: True の場合 RETURNING * の結果を returned_values に格納
    metrics_callback: BatchMetrics を受け取るコールバック (rows が空なら呼ばれない)

    Raises
    ------
    BatchInsertError: identifier invalid or the driver raised
    """
    rows_list = [list(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)
    if not columns:
        raise BatchInsertError("no columns to insert")

    cols_sql = ",".join(quote_ident(c) for c in columns)
    sql = f"INSERT INTO {quote_ident(table)} ({cols_sql}) VALUES %s"
    if returning:
        sql += " RETURNING *"

    start_time = time.time()
    try:
        returned = execute_values(
            cursor, sql, rows_list, page_size=len(rows_list), fetch=returning
        )
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    if returning:
        returned_rows = list(returned or [])
        return InsertResult(inserted_rows=len(returned_rows), returned_values=returned_rows)
    return InsertResult(inserted_rows=len(rows_list), returned_values=None)
