from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ..csv.reader import CsvData, CsvStructureError, parse_csv_text, read_csv_file
from ..db.store import PERMISSION_DENIED_MESSAGE, LeadStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import ReferenceListConfig
from ..models.header_mapping import HeaderMapping
from ..models.import_outcome import ErrorDetail, ImportOutcome
from ..models.import_step import ImportStep
from ..models.row_data import ValidationResult
from ..models.target_field import LEAD_FIELDS, TargetFieldSpec, refresh_allowed_values
from .column_mapper import apply_overrides, propose_mapping
from .import_executor import execute_import
from .progress import ProgressTracker
from .reporter import collect_error_details
from .row_validator import MappingIncompleteError, validate_rows

"""Step-gated import session.

One ImportSession owns the state of one import run and enforces the order
upload -> mapping -> review -> result. The user may step back (review ->
mapping -> upload) or restart; nothing runs concurrently within a session and
sessions share no state.

Failures keep the session in the step where they happened:
- CsvStructureError: stays in upload, no partial state retained
- MappingIncompleteError: stays in mapping (mapping editable again)
- MissingTenantError / NothingToImportError: stays in review
A store failure is not an exception here: confirm() returns the failed
ImportOutcome and the session moves to result.
"""

__all__ = [
    "ImportSessionError",
    "StepError",
    "NothingToImportError",
    "ImportSession",
]

logger = logging.getLogger(__name__)


class ImportSessionError(Exception):
    """Base exception for import session errors."""
    pass


class StepError(ImportSessionError):
    """Operation called in the wrong step."""


class NothingToImportError(ImportSessionError):
    """confirm() with zero valid rows."""


class ImportSession:
    def __init__(
        self,
        specs: Sequence[TargetFieldSpec] = LEAD_FIELDS,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.specs: list[TargetFieldSpec] = list(specs)
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self._step = ImportStep.UPLOAD
        self.csv_data: CsvData | None = None
        self.mapping: HeaderMapping | None = None
        self.validation: ValidationResult | None = None
        self.outcome: ImportOutcome | None = None

    # --- state ------------------------------------------------------------
    @property
    def step(self) -> ImportStep:
        return self._step

    @property
    def source_name(self) -> str:
        return self.csv_data.source_name if self.csv_data is not None else "<none>"

    def _require(self, *steps: ImportStep) -> None:
        if self._step not in steps:
            allowed = "/".join(s.value for s in steps)
            raise StepError(f"operation requires step {allowed}, current step is {self._step.value}")

    def _record(self, row: int, error_type: str, message: str) -> None:
        self.error_log.append(ErrorRecord.create(self.source_name, row, error_type, message))

    def current_mapping(self) -> HeaderMapping:
        if self.mapping is None:
            raise StepError("no header mapping: load a CSV file first")
        return self.mapping

    def current_data(self) -> CsvData:
        if self.csv_data is None:
            raise StepError("no CSV data: load a CSV file first")
        return self.csv_data

    def current_validation(self) -> ValidationResult:
        if self.validation is None:
            raise StepError("rows have not been reviewed yet")
        return self.validation

    # --- upload -----------------------------------------------------------
    def load_text(self, text: str, source_name: str = "<text>") -> HeaderMapping:
        self._require(ImportStep.UPLOAD)
        try:
            data = parse_csv_text(text, source_name=source_name)
        except CsvStructureError as e:
            self.error_log.append(ErrorRecord.create(source_name, -1, "CSV_STRUCTURE_ERROR", str(e)))
            raise
        return self._accept(data)

    def load_file(self, path: Path) -> HeaderMapping:
        self._require(ImportStep.UPLOAD)
        try:
            data = read_csv_file(path)
        except CsvStructureError as e:
            self.error_log.append(ErrorRecord.create(path.name, -1, "CSV_STRUCTURE_ERROR", str(e)))
            raise
        return self._accept(data)

    def _accept(self, data: CsvData) -> HeaderMapping:
        self.csv_data = data
        self.mapping = propose_mapping(data.headers, self.specs)
        self._step = ImportStep.MAPPING
        logger.info(
            "%s: %d data rows, headers=%s", data.source_name, len(data.rows), data.headers
        )
        return self.mapping

    def load_reference_values(self, store: LeadStore, ref: ReferenceListConfig) -> list[str]:
        """Fetch the allowed values of an enum field once from the store."""
        self._require(ImportStep.UPLOAD, ImportStep.MAPPING)
        rows = store.list(ref.table, dict(ref.filters) or None)
        values = [str(r[ref.column]) for r in rows if r.get(ref.column) not in (None, "")]
        self.specs = refresh_allowed_values(self.specs, ref.field_id, values)
        logger.debug("reference values field=%s values=%s", ref.field_id, values)
        return values

    # --- mapping ----------------------------------------------------------
    def set_mapping(self, header: str, choice: str) -> None:
        self._require(ImportStep.MAPPING)
        self.current_mapping().set(header, choice)

    def reset_mapping(self, header: str) -> None:
        self._require(ImportStep.MAPPING)
        self.current_mapping().reset(header)

    def apply_overrides(self, overrides: dict[str, str]) -> list[str]:
        self._require(ImportStep.MAPPING)
        return apply_overrides(self.current_mapping(), overrides)

    def review(self) -> ValidationResult:
        """Freeze the mapping and validate all rows (mapping -> review)."""
        self._require(ImportStep.MAPPING)
        data = self.current_data()
        mapping = self.current_mapping().freeze()
        for field_id, headers in mapping.duplicate_targets().items():
            logger.warning(
                "field '%s' mapped from several columns %s; right-most column wins",
                field_id,
                headers,
            )
        try:
            with ProgressTracker(len(data.rows)) as progress:
                result = validate_rows(
                    mapping,
                    self.specs,
                    data.rows,
                    on_row=lambda failed: progress.advance(failed=failed),
                )
        except MappingIncompleteError as e:
            mapping.thaw()
            self._record(-1, "MAPPING_INCOMPLETE", str(e))
            raise

        for message in result.warnings:
            logger.warning(message)
        for err in result.errors:
            self._record(err.row_number, "ROW_VALIDATION_ERROR", err.error_message)
        logger.info(
            "review: %d valid leads, %d rows with errors", len(result.valid), len(result.errors)
        )
        self.validation = result
        self._step = ImportStep.REVIEW
        return result

    # --- review -----------------------------------------------------------
    def confirm(self, store: LeadStore, tenant_id: str | None) -> ImportOutcome:
        """Submit the valid rows (review -> result)."""
        self._require(ImportStep.REVIEW)
        validation = self.current_validation()
        if not validation.valid:
            raise NothingToImportError("No valid leads to import.")
        outcome = execute_import(validation.valid, tenant_id, store, self.specs)
        for detail in outcome.error_details or []:
            error_type = (
                "PERMISSION_DENIED"
                if detail.error_message == PERMISSION_DENIED_MESSAGE
                else "DATABASE_INSERT_ERROR"
            )
            self._record(-1, error_type, detail.error_message)
        self.outcome = outcome
        self._step = ImportStep.RESULT
        return outcome

    def error_details(self) -> list[ErrorDetail]:
        errors = self.validation.errors if self.validation is not None else []
        return collect_error_details(errors, self.outcome)

    # --- navigation -------------------------------------------------------
    def back(self) -> ImportStep:
        if self._step == ImportStep.REVIEW:
            self.current_mapping().thaw()
            self.validation = None
            self._step = ImportStep.MAPPING
        elif self._step == ImportStep.MAPPING:
            self.csv_data = None
            self.mapping = None
            self._step = ImportStep.UPLOAD
        else:
            raise StepError(f"cannot go back from step {self._step.value}")
        return self._step

    def restart(self) -> None:
        self.csv_data = None
        self.mapping = None
        self.validation = None
        self.outcome = None
        self._step = ImportStep.UPLOAD
