from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, default_config, load_config
from ..db.memory import MemoryStorage
from ..db.postgres import PostgresStorage
from ..db.storage import Storage, StorageError
from ..excel.reader import MalformedFileError, read_spreadsheet_path
from ..excel.template import write_template
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..mapping.normalizer import resolve_headers
from ..models.candidate import EntityKind
from ..models.import_result import ImportResult
from ..services.orchestrator import ImportPipeline, ProcessingError
from ..services.progress import BatchProgressBar
from ..services.summary import render_summary_line

"""CLI entrypoint: ``python -m crm_import.cli ENTITY FILE``.

Exit codes:
    0  every row inserted or updated
    2  file read, but some rows ended up in the error list
    1  fatal: bad config, unreadable file, database unavailable
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(cfg: ImportConfig) -> str:
    """Connection string precedence: DATABASE_URL / PGDSN, then PG* vars, then config."""
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_storage(cfg: ImportConfig) -> Iterator[PostgresStorage]:  # pragma: no cover (needs a live DB)
    import psycopg2

    try:
        conn = psycopg2.connect(_resolve_dsn(cfg))
    except psycopg2.Error as e:
        raise StorageError(f"connection failed: {e}") from e
    conn.autocommit = True  # BEGIN/COMMIT は PostgresStorage が明示的に発行
    cur = conn.cursor()
    try:
        yield PostgresStorage(cur, cfg.tables)
    finally:
        cur.close()
        conn.close()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet importer for leads, properties, owners and clients")
    p.add_argument("entity", choices=[k.value for k in EntityKind], help="Entity kind to import")
    p.add_argument("file", nargs="?", type=Path, help=".xlsx / .xls file (first sheet, first row = headers)")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--batch-size", type=int, default=None, help="Rows per transaction (default from config)")
    p.add_argument("--dry-run", action="store_true", help="Run against an empty in-memory store")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print header resolution & first rows then exit")
    p.add_argument("--template", type=Path, default=None, help="Write an import template to this path and exit")
    return p.parse_args(argv)


def _load(args: argparse.Namespace) -> ImportConfig:
    if args.config is not None:
        return load_config(args.config)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return default_config()


def _inspect_data(cfg: ImportConfig, kind: EntityKind, path: Path) -> int:
    rows = read_spreadsheet_path(path)
    entity_cfg = cfg.entities[kind]
    print(f"FILE: {path.name} rows={len(rows)}")
    print(f"  headers={rows.columns}")
    for canonical, header in resolve_headers(rows.columns, entity_cfg.alias_table).items():
        marker = "*" if canonical in entity_cfg.required else " "
        print(f"  {marker} {canonical:<22} <- {header if header is not None else '(not found)'}")
    for row in list(rows)[:3]:
        print("    sample_row=", {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.items()})
    return EXIT_SUCCESS_ALL


def _run_import(
    cfg: ImportConfig, kind: EntityKind, path: Path, storage: Storage, batch_size: int
) -> tuple[ImportResult, ErrorLogBuffer]:
    error_log = ErrorLogBuffer(Path(cfg.logs_dir))
    with BatchProgressBar(description=f"Importing {kind.value}") as progress:
        pipeline = ImportPipeline(
            storage,
            cfg.entities,
            batch_size=batch_size,
            timezone=cfg.timezone,
            progress=progress,
            error_log=error_log,
        )
        result = pipeline.import_file(kind, path.read_bytes(), file_name=path.name)
    return result, error_log


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストから [] を渡せるように)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_dotenv(dotenv_path=Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = _load(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    kind = EntityKind(args.entity)

    if args.template is not None:
        args.template.write_bytes(write_template(cfg.entities[kind]))
        logger.info(f"template written: {args.template}")
        return EXIT_SUCCESS_ALL

    if args.file is None:
        logger.error("no input file given")
        return EXIT_FATAL
    if not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL

    batch_size = args.batch_size if args.batch_size is not None else cfg.batch_size
    if batch_size < 1:
        logger.error("batch size must be >= 1")
        return EXIT_FATAL

    try:
        if args.inspect_data:
            return _inspect_data(cfg, kind, args.file)
        if args.dry_run:
            logger.info("dry run: using in-memory storage")
            result, error_log = _run_import(cfg, kind, args.file, MemoryStorage(), batch_size)
        else:
            with _db_storage(cfg) as storage:
                result, error_log = _run_import(cfg, kind, args.file, storage, batch_size)
    except MalformedFileError as e:
        logger.error(f"could not read file: {e}")
        return EXIT_FATAL
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except StorageError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    for err in result.errors[:20]:
        logger.warning(f"row {err.row}: {err.error}")
    if len(result.errors) > 20:
        logger.warning(f"... {len(result.errors) - 20} more errors")
    counts = error_log.counts_by_type()
    written = error_log.flush()
    if written is not None:
        detail = " ".join(f"{k}={v}" for k, v in counts.items())
        logger.info(f"error log: {written} ({detail})")

    log_summary(render_summary_line(result)[len("SUMMARY "):])

    return EXIT_PARTIAL_FAILURE if result.has_errors else EXIT_SUCCESS_ALL
