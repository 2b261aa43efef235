from __future__ import annotations

from dataclasses import dataclass, field

"""Row level models for the CSV lead import.

RawRecord   : one parsed data row (positional cells aligned to the header row)
ImportRecord: field id -> value, built by applying the HeaderMapping
ErrorRow    : a row rejected by validation (original cells kept for display)

row_number is the 1-based data row number (header row not counted), which is
what the review step and the error report show.
"""

__all__ = [
    "RawRecord",
    "ImportRecord",
    "ErrorRow",
    "ValidationResult",
]


@dataclass(frozen=True)
class RawRecord:
    row_number: int
    cells: tuple[str, ...]

    def cell(self, index: int) -> str:
        # 列数不足の行は空文字扱い
        if index < len(self.cells):
            return self.cells[index]
        return ""


@dataclass(frozen=True)
class ImportRecord:
    """Mapped, validated lead values for one source row."""
    row_number: int
    values: dict[str, str]

    def get(self, field_id: str, default: str | None = None) -> str | None:
        return self.values.get(field_id, default)


@dataclass(frozen=True)
class ErrorRow:
    """A row excluded from submission (hard validation failure)."""
    row_number: int
    original_cells: tuple[str, ...]
    error_message: str
    identifying_name: str = ""


@dataclass
class ValidationResult:
    """Partition of the input rows produced by one validation pass."""
    valid: list[ImportRecord] = field(default_factory=list)
    errors: list[ErrorRow] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)  # soft failure messages

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.errors)
