from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from lead_import.models.error_record import ErrorRecord

"""Error log buffering (JSON Lines).

- 固定スキーマ JSON Lines (追加キー禁止)
- 実行ごとに `<logs_dir>/errors-YYYYMMDD-HHMMSS.log` (UTC) を生成 (レコードがある場合のみ)
- バッファリングして run 終了時に一括 flush
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    - ファイルパスは初回アクセスで決定
    - スレッド安全性不要 (シリアル実行)
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def counts_by_type(self) -> dict[str, int]:
        """Buffered record count per error_type (unflushed records only)."""
        counts: dict[str, int] = {}
        for r in self._records:
            counts[r.error_type] = counts.get(r.error_type, 0) + 1
        return counts

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path or None if nothing to write."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
