from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from lead_import.config.loader import SCHEMA_PATH, ConfigError, load_config

"""Config schema contract: unknown keys and malformed values are rejected."""


def _write(temp_workdir: Path, text: str) -> Path:
    p = temp_workdir / "config" / "import.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_schema_file_is_valid_draft():
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    jsonschema.Draft202012Validator.check_schema(schema)


@pytest.mark.parametrize(
    "text",
    [
        "unknown: 1\n",
        "table: 'leads; drop'\n",
        "tenant_id: ''\n",
        "status_values: []\n",
        "column_overrides:\n  Stat: 3\n",
        "reference_lists:\n  - field: status\n    table: lead_statuses\n",
        "database:\n  port: '5432'\n",
        "database:\n  sslmode: require\n",
    ],
)
def test_invalid_config_rejected(temp_workdir: Path, text: str):
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(_write(temp_workdir, text))


def test_nullable_database_fields_accepted(temp_workdir: Path):
    cfg = load_config(_write(temp_workdir, "database:\n  host: null\n  port: null\n"))
    assert cfg.database.host is None


def test_column_override_choices_accept_ignore_and_blank(temp_workdir: Path):
    cfg = load_config(_write(temp_workdir, "column_overrides:\n  A: ignore\n  B: ''\n"))
    assert cfg.column_overrides == {"A": "ignore", "B": ""}
