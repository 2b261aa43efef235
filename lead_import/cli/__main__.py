from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from lead_import.config.loader import ConfigError, load_config_or_default
from lead_import.csv.reader import CsvStructureError
from lead_import.db.store import InMemoryLeadStore, LeadStore, PostgresLeadStore, StorageError
from lead_import.logging.error_log import ErrorLogBuffer
from lead_import.logging.init import log_summary, set_debug, setup_logging
from lead_import.models.config_models import ImportConfig
from lead_import.models.header_mapping import UNSET, MappingError
from lead_import.models.import_outcome import ImportOutcome
from lead_import.models.row_data import ValidationResult
from lead_import.models.target_field import LEAD_FIELDS, refresh_allowed_values, required_field_ids
from lead_import.services.import_executor import MissingTenantError
from lead_import.services.reporter import preview_errors, render_summary_line, write_error_report
from lead_import.services.row_validator import MappingIncompleteError
from lead_import.services.session import ImportSession, NothingToImportError

"""CLI entrypoint.

    python -m lead_import.cli leads.csv --tenant ORG_ID [--map "Stat=status"] ...

Runs one import through the session steps (upload -> mapping -> review ->
result) non-interactively: mapping overrides come from config/import.yml
(column_overrides) and --map, which wins over the config.

Exit codes: 0 every row imported, 2 some rows skipped or not persisted,
1 fatal (config, file structure, mapping, tenant, store failure).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[object]:  # pragma: no cover (thin wrapper)
    """Context manager to provide a psycopg2 cursor.

    接続情報の解決優先順位:
        1. `.env` で読み込まれた環境変数 (main() 冒頭で上書きロード済み)
        2. 既存の環境変数 DATABASE_URL / PGDSN、または個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config/import.yml の database セクション (不足分のフォールバック)
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    conn.autocommit = False  # トランザクション境界は PostgresLeadStore が BEGIN/COMMIT
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


@contextmanager
def _open_store(cfg: ImportConfig, needed: bool) -> Iterator[LeadStore | None]:
    if not needed:
        yield None
        return
    # テスト等で DB 接続を無効化: DISABLE_DB_CONNECT=1 -> in-memory store
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        yield InMemoryLeadStore(cfg.table)
        return
    with _db_connection(cfg) as cur:
        yield PostgresLeadStore(cur, table=cfg.table)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="lead_import", description="Bulk CSV lead importer")
    p.add_argument("csv_path", help="CSV file (first row = headers)")
    p.add_argument("--config", help="YAML config (default: config/import.yml if present)")
    p.add_argument("--tenant", help="Organization id attached to every lead (overrides config)")
    p.add_argument(
        "--map",
        action="append",
        default=[],
        metavar="HEADER=FIELD",
        help="Map a CSV header to a lead field, 'ignore' or '' (repeatable)",
    )
    p.add_argument("--error-report", help="Write the CSV error report to this path")
    p.add_argument("--dry-run", action="store_true", help="Stop after the review step")
    p.add_argument("--inspect-data", action="store_true", help="Print headers, proposed mapping and first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _parse_map_args(items: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in items:
        header, sep, choice = item.rpartition("=")
        if not sep or not header.strip():
            raise ValueError(f"--map expects HEADER=FIELD, got {item!r}")
        overrides[header.strip()] = choice.strip()
    return overrides


def _inspect_data(session: ImportSession) -> int:
    data = session.current_data()
    mapping = session.current_mapping()
    print(f"FILE: {data.source_name} rows={len(data.rows)}")
    print(f"  required={required_field_ids(session.specs)}")
    for header in mapping:
        choice = mapping.get(header)
        print(f"  {header!r} -> {choice if choice != UNSET else '(unset)'}")
    print("  sample_rows=", data.sample(3))
    return EXIT_SUCCESS_ALL


def _exit_code(validation: ValidationResult, outcome: ImportOutcome | None) -> int:
    if outcome is not None and outcome.failed:
        return EXIT_FATAL
    if validation.errors or (outcome is not None and outcome.error_count):
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _run(session: ImportSession, cfg: ImportConfig, args: argparse.Namespace, store: LeadStore | None) -> int:
    logger = setup_logging()

    if store is not None:
        for ref in cfg.reference_lists:
            try:
                session.load_reference_values(store, ref)
            except (StorageError, KeyError, ValueError) as e:
                logger.error(f"reference list {ref.field_id}: {e}")
                return EXIT_FATAL

    try:
        overrides = {**cfg.column_overrides, **_parse_map_args(args.map)}
        missing = session.apply_overrides(overrides)
    except (ValueError, MappingError) as e:
        logger.error(f"mapping: {e}")
        return EXIT_FATAL
    if missing:
        logger.debug(f"mapping overrides for absent headers: {missing}")

    mapping = session.current_mapping()
    for header in mapping:
        choice = mapping.get(header)
        logger.info(f"map {header!r} -> {choice if choice != UNSET else '(unset)'}")

    try:
        validation = session.review()
    except MappingIncompleteError as e:
        logger.error(f"mapping: {e}")
        return EXIT_FATAL

    for line in preview_errors(session.error_details()):
        logger.warning(f"skip {line}")

    outcome: ImportOutcome | None = None
    if args.dry_run:
        logger.info(f"dry-run: {len(validation.valid)} leads would be imported")
    elif store is None:
        logger.error("import: no lead store available")
        return EXIT_FATAL
    else:
        tenant = args.tenant or cfg.tenant_id
        try:
            outcome = session.confirm(store, tenant)
        except NothingToImportError as e:
            logger.error(f"import: {e}")
            outcome = None
        except MissingTenantError as e:
            logger.error(f"import: {e}")
            return EXIT_FATAL
        if outcome is not None and outcome.failed:
            for detail in outcome.error_details or []:
                logger.error(f"import: {detail.error_message}")

    details = session.error_details()
    if args.error_report and details:
        path = write_error_report(details, Path(args.error_report))
        logger.info(f"error report: {path}")

    summary_line = render_summary_line(
        outcome if outcome is not None else ImportOutcome(0, 0, 0),
        skipped_rows=len(validation.errors),
    )
    # log_summary が "SUMMARY " を付与するため除去
    log_summary(summary_line[len("SUMMARY "):])
    return _exit_code(validation, outcome)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] が与えられた場合に sys.argv[1:] が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug()

    try:
        cfg = load_config_or_default(Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    specs = list(LEAD_FIELDS)
    if cfg.status_values:
        specs = refresh_allowed_values(specs, "status", cfg.status_values)

    error_log = ErrorLogBuffer(Path(cfg.error_log_dir))
    session = ImportSession(specs, error_log)
    try:
        try:
            session.load_file(Path(args.csv_path))
        except CsvStructureError as e:
            logger.error(f"csv: {e}")
            return EXIT_FATAL

        if args.inspect_data:
            return _inspect_data(session)

        needs_store = not args.dry_run or bool(cfg.reference_lists)
        try:
            with _open_store(cfg, needs_store) as store:
                return _run(session, cfg, args, store)
        except psycopg2.Error as db_e:
            logger.error(f"db: {db_e}")
            return EXIT_FATAL
    finally:
        counts = error_log.counts_by_type()
        path = error_log.flush()
        if path is not None:
            detail = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))
            logger.info(f"error log: {path} ({detail})")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
