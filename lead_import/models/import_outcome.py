from __future__ import annotations

from dataclasses import dataclass

from .row_data import ErrorRow

"""Import outcome models.

ImportOutcome is the terminal artifact of one import run: produced once by the
import executor, never mutated. error_details is only populated when the store
reported a failure (aggregate detail, row_number=0) since the boundary does not
expose which rows of a batch failed.
"""

__all__ = [
    "ErrorDetail",
    "ImportOutcome",
]


@dataclass(frozen=True)
class ErrorDetail:
    """One line of the error report / result preview."""
    row_number: int  # 0 = batch-level (all rows)
    identifying_name: str
    error_message: str

    @staticmethod
    def from_error_row(row: ErrorRow) -> ErrorDetail:
        return ErrorDetail(
            row_number=row.row_number,
            identifying_name=row.identifying_name,
            error_message=row.error_message,
        )


@dataclass(frozen=True)
class ImportOutcome:
    submitted_count: int
    success_count: int
    error_count: int
    error_details: list[ErrorDetail] | None = None

    @property
    def failed(self) -> bool:
        """True when the store call failed as a whole."""
        return self.submitted_count > 0 and self.success_count == 0 and bool(self.error_details)
