# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import pytest

from lead_import.logging.init import LOGGER_NAME, reset_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    # CLI tests attach a stdout handler bound to capsys; drop it between tests
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: leads
tenant_id: org-1
column_overrides:
  Stat: status
  Internal Id: ignore
error_log_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def leads_csv(temp_workdir: Path) -> Path:
    """3 valid rows, 1 row with a blank name, 1 row with a bad status."""
    f = temp_workdir / "data" / "leads.csv"
    f.write_text(
        "Full Name,Email Address,Stat,Internal Id\n"
        "Jane Doe,jane@x.com,Contacted,1\n"
        '"Smith, John",john@x.com,New,2\n'
        ",nobody@x.com,New,3\n"
        "Ann Lee,ann@x.com,Bogus,4\n"
        "Bob Ray,bob@x.com,,5\n",
        encoding="utf-8",
    )
    return f


@pytest.fixture()
def clean_csv(temp_workdir: Path) -> Path:
    f = temp_workdir / "data" / "clean.csv"
    f.write_text(
        "name,email,status\n"
        "Jane Doe,jane@x.com,New\n"
        "John Roe,john@x.com,Qualified\n",
        encoding="utf-8",
    )
    return f
