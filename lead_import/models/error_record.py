from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Each rejected row, mapping abort and store failure of an import run becomes one
ErrorRecord. row=-1 is the sentinel for file-level errors where no specific
data row applies (structural errors, mapping incompleteness, batch failures).
"""

__all__ = [
    "ErrorRecord",
    "ERROR_TYPES",
]

ERROR_TYPES = frozenset({
    "CSV_STRUCTURE_ERROR",
    "MAPPING_INCOMPLETE",
    "ROW_VALIDATION_ERROR",
    "PERMISSION_DENIED",
    "DATABASE_INSERT_ERROR",
})


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: CSV source name being imported
        row: 1-based data row number. -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Validation or store error message
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
