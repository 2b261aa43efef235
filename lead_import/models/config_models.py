from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the CSV lead import.

Loaded from config/import.yml by lead_import.config.loader. Every key is
optional; an empty/missing config yields ImportConfig() with the defaults below.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ReferenceListConfig:
    """Where to fetch the allowed values of an enum field from (one-shot)."""
    field_id: str
    table: str
    column: str
    filters: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    table: str = "leads"  # 挿入先テーブル
    tenant_id: str | None = None  # org_id (CLI --tenant が優先)
    column_overrides: dict[str, str] = field(default_factory=dict)  # header -> field|ignore|""
    status_values: list[str] | None = None  # LeadStatus の代替リスト
    reference_lists: list[ReferenceListConfig] = field(default_factory=list)
    error_log_dir: str = "logs"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
