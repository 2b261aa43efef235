from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..db.store import PERMISSION_DENIED_MESSAGE, LeadStore, StorageError
from ..models.import_outcome import ErrorDetail, ImportOutcome
from ..models.row_data import ImportRecord
from ..models.target_field import LEAD_FIELDS, TargetFieldSpec

"""Import executor: submit the valid records to the store in one call.

- unset enum fields get their default (status -> New)
- org_id (tenant) is attached to every record; it is always passed in, never
  read from ambient state
- exactly one store.bulk_insert call, no retry, no splitting
- success_count = rows the store returned, error_count = submitted - success
- StorageError -> success 0, error = submitted, one aggregate ErrorDetail
"""

__all__ = [
    "TENANT_COLUMN",
    "MissingTenantError",
    "prepare_records",
    "execute_import",
]

logger = logging.getLogger(__name__)

TENANT_COLUMN = "org_id"


class MissingTenantError(Exception):
    """Raised when no organization id is available for the import."""


def prepare_records(
    records: Sequence[ImportRecord],
    tenant_id: str,
    specs: Sequence[TargetFieldSpec] = LEAD_FIELDS,
) -> list[dict[str, Any]]:
    """Build the insert payload: record values + enum defaults + org_id."""
    defaults = {s.field_id: s.default for s in specs if s.is_enum and s.default is not None}
    payload: list[dict[str, Any]] = []
    for rec in records:
        row: dict[str, Any] = dict(rec.values)
        for field_id, default in defaults.items():
            if not row.get(field_id):
                row[field_id] = default
        row[TENANT_COLUMN] = tenant_id
        payload.append(row)
    return payload


def execute_import(
    records: Sequence[ImportRecord],
    tenant_id: str | None,
    store: LeadStore,
    specs: Sequence[TargetFieldSpec] = LEAD_FIELDS,
) -> ImportOutcome:
    """Submit ``records`` for ``tenant_id`` and reconcile the result.

    Raises:
        MissingTenantError: tenant_id is blank (nothing is submitted)
    """
    if tenant_id is None or not str(tenant_id).strip():
        raise MissingTenantError("organization context is missing")

    submitted = len(records)
    if submitted == 0:
        logger.info("no valid records to import")
        return ImportOutcome(submitted_count=0, success_count=0, error_count=0)

    payload = prepare_records(records, str(tenant_id).strip(), specs)
    try:
        persisted = store.bulk_insert(payload)
    except StorageError as e:
        message = PERMISSION_DENIED_MESSAGE if e.permission_denied else f"Bulk import failed: {e}"
        logger.error("bulk insert failed submitted=%d: %s", submitted, message)
        return ImportOutcome(
            submitted_count=submitted,
            success_count=0,
            error_count=submitted,
            error_details=[ErrorDetail(row_number=0, identifying_name="All", error_message=message)],
        )

    success = min(len(persisted), submitted)
    outcome = ImportOutcome(
        submitted_count=submitted,
        success_count=success,
        error_count=submitted - success,
    )
    if outcome.error_count:
        logger.warning(
            "store persisted %d of %d submitted records", outcome.success_count, submitted
        )
    return outcome
