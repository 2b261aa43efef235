from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

"""Target field registry for the CSV lead import.

This module defines the static list of CRM lead fields a CSV column can be
mapped to, which of them are mandatory, and the per-field rules (enum
membership, format pattern) applied by the row validator.

The registry is built once at import time and never mutated; callers that need
a variant (e.g. status values fetched from the store) get a new list via
``refresh_allowed_values``.
"""

__all__ = [
    "LeadStatus",
    "TargetFieldSpec",
    "EMAIL_PATTERN",
    "LEAD_FIELDS",
    "field_ids",
    "required_field_ids",
    "get_spec",
    "refresh_allowed_values",
]


class LeadStatus(Enum):
    """Lead lifecycle status as stored in the ``leads.status`` column."""
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    CONVERTED = "Converted"
    LOST = "Lost"


# 緩いチェック (local@domain.tld 形のみ)
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


@dataclass(frozen=True)
class TargetFieldSpec:
    """One canonical lead attribute a CSV column can be mapped to.

    Attributes:
        field_id: Column name in the ``leads`` table (also the mapping key)
        required: Row is rejected when the mapped value is blank
        allowed_values: Enum domain (case-sensitive). None = free text
        default: Value applied when an enum field is blank or invalid
        pattern: Structural format constraint (re.search, not anchored)
        label: Human readable name for mapping prompts
    """
    field_id: str
    required: bool = False
    allowed_values: frozenset[str] | None = None
    default: str | None = None
    pattern: re.Pattern[str] | None = None
    label: str = ""

    @property
    def display_name(self) -> str:
        if self.label:
            return self.label
        return self.field_id.replace("_", " ").title()

    @property
    def is_enum(self) -> bool:
        return self.allowed_values is not None


LEAD_FIELDS: tuple[TargetFieldSpec, ...] = (
    TargetFieldSpec("name", required=True),
    TargetFieldSpec("email", required=True, pattern=EMAIL_PATTERN),
    TargetFieldSpec("mobile"),
    TargetFieldSpec("source"),
    TargetFieldSpec(
        "status",
        allowed_values=frozenset(s.value for s in LeadStatus),
        default=LeadStatus.NEW.value,
    ),
    TargetFieldSpec("stage"),
    TargetFieldSpec("notes"),
    TargetFieldSpec("company_name"),
    TargetFieldSpec("contact_name"),
)


def field_ids(specs: Iterable[TargetFieldSpec]) -> list[str]:
    return [s.field_id for s in specs]


def required_field_ids(specs: Iterable[TargetFieldSpec]) -> list[str]:
    return [s.field_id for s in specs if s.required]


def get_spec(specs: Iterable[TargetFieldSpec], field_id: str) -> TargetFieldSpec | None:
    for spec in specs:
        if spec.field_id == field_id:
            return spec
    return None


def refresh_allowed_values(
    specs: Sequence[TargetFieldSpec], field_id: str, values: Iterable[str]
) -> list[TargetFieldSpec]:
    """Return a copy of ``specs`` with the enum domain of ``field_id`` replaced.

    Used when the valid values are fetched once from a reference table instead
    of the built-in ``LeadStatus`` list. Blank values are dropped. The default
    is kept if it is still a member, otherwise the first fetched value is used.

    Raises:
        KeyError: ``field_id`` is not in ``specs``
        ValueError: no usable values were supplied
    """
    cleaned = [v.strip() for v in values if isinstance(v, str) and v.strip()]
    if not cleaned:
        raise ValueError(f"no allowed values supplied for field '{field_id}'")
    if get_spec(specs, field_id) is None:
        raise KeyError(field_id)

    result: list[TargetFieldSpec] = []
    for spec in specs:
        if spec.field_id != field_id:
            result.append(spec)
            continue
        allowed = frozenset(cleaned)
        default = spec.default if spec.default in allowed else cleaned[0]
        result.append(replace(spec, allowed_values=allowed, default=default))
    return result
