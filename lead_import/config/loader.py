from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig, ReferenceListConfig

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the JSON schema shipped with the package
- Apply defaults (table=leads, error_log_dir=logs)
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
    "load_config_or_default",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).parent / "import_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: schema file missing/invalid or the data fails validation
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    refs = [
        ReferenceListConfig(
            field_id=r["field"],
            table=r["table"],
            column=r["column"],
            filters=dict(r.get("filters") or {}),
        )
        for r in data.get("reference_lists", [])
    ]
    return ImportConfig(
        table=data.get("table", "leads"),
        tenant_id=data.get("tenant_id"),
        column_overrides=dict(data.get("column_overrides") or {}),
        status_values=data.get("status_values"),
        reference_lists=refs,
        error_log_dir=data.get("error_log_dir", "logs"),
        database=db,
    )


def load_config_or_default(path: Path | None) -> ImportConfig:
    """Explicit path must exist; the default path is optional."""
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ImportConfig()
