from __future__ import annotations

import pytest

from lead_import.models.header_mapping import IGNORE, UNSET, MappingError
from lead_import.models.target_field import LEAD_FIELDS
from lead_import.services.column_mapper import apply_overrides, normalize_label, propose_mapping


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Full Name", "full name"),
        ("company_name", "company name"),
        ("  E-Mail  ", "e mail"),
        ("Lead__Source", "lead source"),
        ("", ""),
    ],
)
def test_normalize_label(text, expected):
    assert normalize_label(text) == expected


def test_mapping_domain_equals_header_list():
    headers = ["Full Name", "Email Address", "Stat", "Random", ""]
    m = propose_mapping(headers, LEAD_FIELDS)
    assert list(m) == headers
    assert set(m.as_dict()) == set(headers)


def test_export_style_headers_are_matched():
    m = propose_mapping(["Full Name", "Email Address", "Stat"], LEAD_FIELDS)
    assert m["Full Name"] == "name"
    assert m["Email Address"] == "email"
    assert m["Stat"] == UNSET


def test_exact_match_beats_substring():
    # "company_name" は exact で company_name、"Name" は name
    m = propose_mapping(["company_name", "Name"], LEAD_FIELDS)
    assert m["company_name"] == "company_name"
    assert m["Name"] == "name"


def test_field_never_proposed_twice():
    m = propose_mapping(["Full Name", "Company Name", "Contact Name"], LEAD_FIELDS)
    assert m["Full Name"] == "name"
    assert m["Company Name"] == "company_name"
    assert m["Contact Name"] == "contact_name"
    assert m.duplicate_targets() == {}


def test_second_header_for_same_field_left_unset():
    m = propose_mapping(["Email", "Email Address"], LEAD_FIELDS)
    assert m["Email"] == "email"
    assert m["Email Address"] == UNSET


def test_apply_overrides_returns_absent_headers():
    m = propose_mapping(["Full Name", "Email Address", "Stat"], LEAD_FIELDS)
    missing = apply_overrides(m, {"Stat": "status", "Email Address": IGNORE, "Gone": "notes"})
    assert missing == ["Gone"]
    assert m["Stat"] == "status"
    assert m["Email Address"] == IGNORE


def test_apply_overrides_unknown_field_raises():
    m = propose_mapping(["Stat"], LEAD_FIELDS)
    with pytest.raises(MappingError):
        apply_overrides(m, {"Stat": "stat"})
