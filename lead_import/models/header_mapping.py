from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

"""HeaderMapping model: CSV header -> lead target field.

Each header carries two independent values:

- suggestion: computed once by the column mapper from the header text
- override: explicit user choice, set through ``set()``

The effective choice is the override when present, otherwise the suggestion.
Overrides are never re-derived; ``reset()`` is the only way to fall back to the
suggestion. After ``freeze()`` the mapping is read-only (validation step).
"""

__all__ = [
    "IGNORE",
    "UNSET",
    "MappingError",
    "HeaderMapping",
]

IGNORE = "ignore"
UNSET = ""


class MappingError(Exception):
    """Raised on invalid mapping edits (unknown header/field, frozen mapping)."""


class HeaderMapping:
    """Ordered header -> choice mapping for one import run.

    A choice is a target field id, ``IGNORE`` or ``UNSET``.
    """

    def __init__(
        self,
        headers: Sequence[str],
        suggestions: dict[str, str] | None = None,
        valid_fields: Iterable[str] | None = None,
    ) -> None:
        if len(set(headers)) != len(headers):
            raise MappingError("headers must be unique within one import")
        self._headers: tuple[str, ...] = tuple(headers)
        self._valid_fields: frozenset[str] | None = (
            frozenset(valid_fields) if valid_fields is not None else None
        )
        self._suggestions: dict[str, str] = {h: UNSET for h in self._headers}
        for header, choice in (suggestions or {}).items():
            self._check_header(header)
            self._check_choice(choice)
            self._suggestions[header] = choice
        self._overrides: dict[str, str] = {}
        self._frozen = False

    # --- lookup -----------------------------------------------------------
    @property
    def headers(self) -> tuple[str, ...]:
        return self._headers

    @property
    def frozen(self) -> bool:
        return self._frozen

    def suggestion(self, header: str) -> str:
        self._check_header(header)
        return self._suggestions[header]

    def is_overridden(self, header: str) -> bool:
        self._check_header(header)
        return header in self._overrides

    def get(self, header: str) -> str:
        self._check_header(header)
        if header in self._overrides:
            return self._overrides[header]
        return self._suggestions[header]

    def __getitem__(self, header: str) -> str:
        return self.get(header)

    def __contains__(self, header: object) -> bool:
        return header in self._suggestions

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def as_dict(self) -> dict[str, str]:
        return {h: self.get(h) for h in self._headers}

    def target_of(self, header: str) -> str | None:
        """Return the target field id for ``header`` or None (ignore/unset)."""
        choice = self.get(header)
        if choice in (IGNORE, UNSET):
            return None
        return choice

    def mapped_fields(self) -> set[str]:
        return {f for f in (self.target_of(h) for h in self._headers) if f is not None}

    def columns_for(self, field_id: str) -> list[str]:
        return [h for h in self._headers if self.target_of(h) == field_id]

    def duplicate_targets(self) -> dict[str, list[str]]:
        """Fields mapped from more than one header (right-most column wins)."""
        dups: dict[str, list[str]] = {}
        for field_id in sorted(self.mapped_fields()):
            cols = self.columns_for(field_id)
            if len(cols) > 1:
                dups[field_id] = cols
        return dups

    # --- edits ------------------------------------------------------------
    def set(self, header: str, choice: str) -> None:
        if self._frozen:
            raise MappingError("mapping is frozen")
        self._check_header(header)
        self._check_choice(choice)
        self._overrides[header] = choice

    def reset(self, header: str) -> None:
        if self._frozen:
            raise MappingError("mapping is frozen")
        self._check_header(header)
        self._overrides.pop(header, None)

    def freeze(self) -> HeaderMapping:
        self._frozen = True
        return self

    def thaw(self) -> HeaderMapping:
        self._frozen = False
        return self

    # --- internal ---------------------------------------------------------
    def _check_header(self, header: str) -> None:
        if header not in self._suggestions:
            raise MappingError(f"unknown header: {header!r}")

    def _check_choice(self, choice: str) -> None:
        if choice in (IGNORE, UNSET):
            return
        if self._valid_fields is not None and choice not in self._valid_fields:
            raise MappingError(f"unknown target field: {choice!r}")

    def __repr__(self) -> str:  # pragma: no cover (debug aid)
        return f"HeaderMapping({self.as_dict()!r}, frozen={self._frozen})"
