from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

import psycopg2.errors

from .bulk_insert import BatchInsertError, BatchMetrics, bulk_insert, quote_ident

"""Storage boundary for the lead import.

LeadStore is the opaque row store the import executor talks to:

- bulk_insert(records) -> rows actually persisted (one mutating call)
- list(table, filters) -> rows (reference lists such as valid status values)

PostgresLeadStore runs on a psycopg2 cursor with an explicit transaction per
bulk insert. InMemoryLeadStore backs mock mode (DISABLE_DB_CONNECT=1) and tests.
"""

__all__ = [
    "PERMISSION_DENIED_MESSAGE",
    "StorageError",
    "LeadStore",
    "PostgresLeadStore",
    "InMemoryLeadStore",
]

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission denied. Please check your database policies."


class StorageError(Exception):
    """The store call failed as a whole (transport, permission, constraint)."""

    def __init__(self, message: str, *, permission_denied: bool = False) -> None:
        super().__init__(message)
        self.permission_denied = permission_denied


def _is_permission_error(exc: BaseException | None) -> bool:
    if exc is None:
        return False
    if isinstance(exc, psycopg2.errors.InsufficientPrivilege):
        return True
    text = str(exc)
    return "violates row-level security policy" in text or "permission denied" in text


class LeadStore(ABC):
    """Row store abstraction used by the import executor."""

    @abstractmethod
    def bulk_insert(self, records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        """Persist ``records`` in one request and return the persisted rows.

        Raises:
            StorageError: the request failed; which rows (if any) were written
                is not known
        """

    @abstractmethod
    def list(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return rows of ``table`` matching all equality ``filters``."""


def _columns_of(records: Sequence[dict[str, Any]]) -> list[str]:
    columns: list[str] = []
    for rec in records:
        for key in rec:
            if key not in columns:
                columns.append(key)
    return columns


class PostgresLeadStore(LeadStore):
    """LeadStore on a psycopg2 cursor (autocommit off).

    Each bulk_insert is its own transaction: BEGIN -> INSERT ... RETURNING * ->
    COMMIT, ROLLBACK on failure.
    """

    def __init__(self, cursor: Any, table: str = "leads") -> None:
        self.cursor = cursor
        self.table = table

    def _log_metrics(self, metrics: BatchMetrics) -> None:
        logger.debug(
            "table=%s bulk_insert batch_size=%d elapsed=%.3fs",
            self.table,
            metrics.batch_size,
            metrics.elapsed_seconds,
        )

    def _rollback(self) -> None:
        try:
            self.cursor.execute("ROLLBACK")
        except Exception:  # pragma: no cover - connection already broken
            logger.debug("rollback failed", exc_info=True)

    def bulk_insert(self, records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        if not records:
            return []
        columns = _columns_of(records)
        rows = [[rec.get(c) for c in columns] for rec in records]
        try:
            self.cursor.execute("BEGIN")
            result = bulk_insert(
                self.cursor,
                self.table,
                columns,
                rows,
                returning=True,
                metrics_callback=self._log_metrics,
            )
            self.cursor.execute("COMMIT")
        except BatchInsertError as e:
            self._rollback()
            denied = _is_permission_error(e.__cause__) or _is_permission_error(e)
            raise StorageError(str(e), permission_denied=denied) from e
        except psycopg2.Error as e:
            self._rollback()
            raise StorageError(str(e), permission_denied=_is_permission_error(e)) from e

        names = [d[0] for d in (self.cursor.description or [])]
        returned = result.returned_values or []
        if not names:
            # description なし (モック等) の場合は列名不明のまま件数のみ保持
            return [{"_row": tuple(r)} for r in returned]
        return [dict(zip(names, r, strict=False)) for r in returned]

    def list(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        sql = f"SELECT * FROM {quote_ident(table)}"
        params: list[Any] = []
        if filters:
            clauses = []
            for col, value in filters.items():
                clauses.append(f"{quote_ident(col)} = %s")
                params.append(value)
            sql += " WHERE " + " AND ".join(clauses)
        try:
            self.cursor.execute(sql, params)
            fetched = self.cursor.fetchall()
        except (psycopg2.Error, BatchInsertError) as e:
            raise StorageError(str(e), permission_denied=_is_permission_error(e)) from e
        names = [d[0] for d in (self.cursor.description or [])]
        return [dict(zip(names, r, strict=False)) for r in fetched]


class InMemoryLeadStore(LeadStore):
    """Dict backed store for mock mode and tests.

    Parameters
    ----------
    reject: rows for which this returns True are silently not persisted
        (simulates a store that drops part of a batch)
    error: raised from bulk_insert instead of persisting anything
    """

    def __init__(
        self,
        table: str = "leads",
        *,
        reject: Callable[[dict[str, Any]], bool] | None = None,
        error: StorageError | None = None,
    ) -> None:
        self.table = table
        self.tables: dict[str, list[dict[str, Any]]] = {table: []}
        self.reject = reject
        self.error = error
        self.insert_calls = 0

    def bulk_insert(self, records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        self.insert_calls += 1
        if self.error is not None:
            raise self.error
        stored = self.tables.setdefault(self.table, [])
        persisted: list[dict[str, Any]] = []
        for rec in records:
            if self.reject is not None and self.reject(rec):
                continue
            row = {"id": len(stored) + 1, **rec}
            stored.append(row)
            persisted.append(row)
        return persisted

    def list(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        rows = self.tables.get(table, [])
        if not filters:
            return list(rows)
        return [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
