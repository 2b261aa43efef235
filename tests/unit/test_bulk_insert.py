from __future__ import annotations

from typing import Any

import pytest

from lead_import.db import bulk_insert as bi
from lead_import.db.bulk_insert import BatchInsertError, BatchMetrics, bulk_insert, quote_ident


class _Recorder:
    def __init__(self, returned: list[tuple[Any, ...]] | None = None, error: Exception | None = None):
        self.calls: list[dict[str, Any]] = []
        self.returned = returned
        self.error = error

    def __call__(self, cursor, sql, rows, page_size=100, fetch=False):
        self.calls.append({"sql": sql, "rows": rows, "page_size": page_size, "fetch": fetch})
        if self.error is not None:
            raise self.error
        return self.returned if fetch else None


def test_single_statement_with_returning(monkeypatch):
    rec = _Recorder(returned=[(1, "Jane"), (2, "Bob")])
    monkeypatch.setattr(bi, "execute_values", rec)
    metrics: list[BatchMetrics] = []

    result = bulk_insert(
        object(), "leads", ["name", "email"], [("Jane", "j@x.com"), ("Bob", "b@x.com")],
        metrics_callback=metrics.append,
    )

    assert len(rec.calls) == 1
    call = rec.calls[0]
    assert call["sql"] == 'INSERT INTO "leads" ("name","email") VALUES %s RETURNING *'
    assert call["page_size"] == 2
    assert call["fetch"] is True
    assert result.inserted_rows == 2
    assert result.returned_values == [(1, "Jane"), (2, "Bob")]
    assert metrics[0].batch_size == 2
    assert metrics[0].elapsed_seconds >= 0


def test_without_returning(monkeypatch):
    rec = _Recorder()
    monkeypatch.setattr(bi, "execute_values", rec)
    result = bulk_insert(object(), "leads", ["name"], [("a",), ("b",), ("c",)], returning=False)
    assert "RETURNING" not in rec.calls[0]["sql"]
    assert result.inserted_rows == 3
    assert result.returned_values is None


def test_empty_rows_do_not_touch_driver(monkeypatch):
    rec = _Recorder()
    monkeypatch.setattr(bi, "execute_values", rec)
    result = bulk_insert(object(), "leads", ["name"], [])
    assert rec.calls == []
    assert result.inserted_rows == 0
    assert result.returned_values == []


def test_driver_error_wrapped_and_metrics_still_reported(monkeypatch):
    rec = _Recorder(error=RuntimeError("boom"))
    monkeypatch.setattr(bi, "execute_values", rec)
    metrics: list[BatchMetrics] = []
    with pytest.raises(BatchInsertError, match="boom") as ei:
        bulk_insert(object(), "leads", ["name"], [("a",)], metrics_callback=metrics.append)
    assert isinstance(ei.value.__cause__, RuntimeError)
    assert len(metrics) == 1


def test_no_columns_rejected():
    with pytest.raises(BatchInsertError):
        bulk_insert(object(), "leads", [], [("a",)])


@pytest.mark.parametrize("name", ["leads; DROP TABLE x", "1abc", 'a"b', ""])
def test_quote_ident_rejects_unsafe_names(name):
    with pytest.raises(BatchInsertError):
        quote_ident(name)


def test_quote_ident():
    assert quote_ident("org_id") == '"org_id"'
