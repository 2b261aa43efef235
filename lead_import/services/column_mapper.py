from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..models.header_mapping import UNSET, HeaderMapping
from ..models.target_field import TargetFieldSpec

"""Column mapper: propose a HeaderMapping from arbitrary CSV headers.

Heuristic per header (header order):
1. a target field whose normalized id equals the normalized header
2. otherwise the first field (registry order) whose normalized id is contained
   in the normalized header ("Email Address" -> email)
A field already proposed for an earlier header is not proposed again, so the
suggestion never maps two headers to one field. No match leaves the header
UNSET. The caller edits the result through HeaderMapping.set().
"""

__all__ = [
    "normalize_label",
    "propose_mapping",
    "apply_overrides",
]

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_label(text: str) -> str:
    """Lower-case and collapse spaces/underscores/hyphens to a single space."""
    return _SEPARATORS.sub(" ", text).strip().lower()


def _match(header: str, specs: Sequence[TargetFieldSpec], taken: set[str]) -> str:
    norm = normalize_label(header)
    if not norm:
        return UNSET
    candidates = [(s.field_id, normalize_label(s.field_id)) for s in specs if s.field_id not in taken]
    for field_id, fnorm in candidates:
        if fnorm == norm:
            return field_id
    for field_id, fnorm in candidates:
        if fnorm and fnorm in norm:
            return field_id
    return UNSET


def propose_mapping(headers: Sequence[str], specs: Sequence[TargetFieldSpec]) -> HeaderMapping:
    """Build the initial mapping for ``headers``. Pure; never fails.

    Every header gets an entry (possibly UNSET).
    """
    taken: set[str] = set()
    suggestions: dict[str, str] = {}
    for header in headers:
        field_id = _match(header, specs, taken)
        suggestions[header] = field_id
        if field_id != UNSET:
            taken.add(field_id)
    logger.debug("proposed mapping %s", suggestions)
    return HeaderMapping(headers, suggestions, valid_fields=[s.field_id for s in specs])


def apply_overrides(mapping: HeaderMapping, overrides: dict[str, str]) -> list[str]:
    """Apply explicit user choices; returns the override headers not in the file.

    Unknown headers are skipped (a config shared between files may name columns
    a given file does not have). Unknown target fields raise MappingError.
    """
    missing: list[str] = []
    for header, choice in overrides.items():
        if header not in mapping:
            missing.append(header)
            continue
        mapping.set(header, choice)
    if missing:
        logger.debug("overrides for absent headers ignored: %s", missing)
    return missing
