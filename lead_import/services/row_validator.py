from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from ..models.header_mapping import HeaderMapping
from ..models.row_data import ErrorRow, ImportRecord, RawRecord, ValidationResult
from ..models.target_field import TargetFieldSpec

"""Row validator: turn mapped CSV rows into ImportRecords or ErrorRows.

Mapping-level check first: every required field must be mapped from at least
one header, otherwise MappingIncompleteError is raised and no row is touched.

Per row:
- hard failure (row goes to ErrorRow): required value blank, pattern mismatch
- soft failure (row kept): enum value not in allowed_values -> coerced to the
  field default, message kept in ValidationResult.warnings
- blank enum value: dropped from the record, the import executor applies the
  default

Individual rows never raise.
"""

__all__ = [
    "IDENTIFYING_FIELD",
    "MappingIncompleteError",
    "check_required_mapped",
    "validate_rows",
]

logger = logging.getLogger(__name__)

# レポートで行を識別する列
IDENTIFYING_FIELD = "name"


class MappingIncompleteError(Exception):
    """Raised when a required target field has no header mapped to it."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "The following CRM fields are required and must be mapped: "
            f"{', '.join(self.missing)}."
        )


def check_required_mapped(mapping: HeaderMapping, specs: Iterable[TargetFieldSpec]) -> None:
    mapped = mapping.mapped_fields()
    missing = [s.field_id for s in specs if s.required and s.field_id not in mapped]
    if missing:
        raise MappingIncompleteError(missing)


def _build_values(raw: RawRecord, columns: list[tuple[int, str]]) -> dict[str, str]:
    values: dict[str, str] = {}
    # 同じ項目に複数列がマップされている場合は右側の列が優先
    for index, field_id in columns:
        values[field_id] = raw.cell(index)
    return values


def _check_row(
    raw: RawRecord, values: dict[str, str], specs: Sequence[TargetFieldSpec]
) -> tuple[list[str], bool]:
    """Apply field rules in place. Returns (messages, has_hard_failure)."""
    messages: list[str] = []
    hard = False
    n = raw.row_number
    for spec in specs:
        fid = spec.field_id
        value = values.get(fid)

        if spec.is_enum and value is not None:
            if value.strip() == "":
                del values[fid]
                value = None
            elif value not in spec.allowed_values:  # type: ignore[operator]
                if spec.default is None:
                    messages.append(f'Invalid {fid} "{value}" for row {n}. Value dropped.')
                    del values[fid]
                    value = None
                else:
                    messages.append(
                        f'Invalid {fid} "{value}" for row {n}. Defaulting to \'{spec.default}\'.'
                    )
                    values[fid] = spec.default
                    value = spec.default

        if value is None or value.strip() == "":
            if spec.required:
                messages.append(f"Missing required value for {fid} in row {n}.")
                hard = True
            continue

        if spec.pattern is not None and not spec.pattern.search(value):
            messages.append(f'Invalid {fid} format "{value}" for row {n}.')
            hard = True
    return messages, hard


def validate_rows(
    mapping: HeaderMapping,
    specs: Sequence[TargetFieldSpec],
    rows: Iterable[RawRecord],
    on_row: Callable[[bool], None] | None = None,
) -> ValidationResult:
    """Validate every row against ``specs`` using the frozen ``mapping``.

    Args:
        mapping: Header mapping (should be frozen by the caller)
        specs: Target field registry
        rows: Parsed data rows
        on_row: Optional callback after each row, called with True when the
            row was rejected (progress display)

    Returns:
        ValidationResult partitioning the rows into valid / errors

    Raises:
        MappingIncompleteError: a required field is not mapped (no row processed)
    """
    check_required_mapped(mapping, specs)

    columns: list[tuple[int, str]] = []
    for index, header in enumerate(mapping.headers):
        field_id = mapping.target_of(header)
        if field_id is not None:
            columns.append((index, field_id))

    result = ValidationResult()
    for raw in rows:
        values = _build_values(raw, columns)
        messages, hard = _check_row(raw, values, specs)
        if hard:
            result.errors.append(
                ErrorRow(
                    row_number=raw.row_number,
                    original_cells=raw.cells,
                    error_message=" ".join(messages),
                    identifying_name=values.get(IDENTIFYING_FIELD, ""),
                )
            )
        else:
            result.valid.append(ImportRecord(row_number=raw.row_number, values=values))
            result.warnings.extend(messages)
        if on_row is not None:
            on_row(hard)

    logger.debug(
        "validated rows=%d valid=%d errors=%d warnings=%d",
        result.total_rows,
        len(result.valid),
        len(result.errors),
        len(result.warnings),
    )
    return result
