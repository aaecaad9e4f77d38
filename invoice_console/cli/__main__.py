from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from invoice_console.config.loader import ConfigError, ImportConfig, load_config
from invoice_console.db.store import InvoiceStore
from invoice_console.excel.export import ExportUnit, write_batch_export
from invoice_console.excel.reader import WorkbookFormatError, map_columns, read_invoice_workbook, read_workbook
from invoice_console.logging.init import log_summary, set_level, setup_logging
from invoice_console.services.orchestrator import ProcessingError, RunReport, process_all, scan_workbooks
from invoice_console.services.summary import invoice_report_lines, render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config/import.yml
- Scan the source directory for workbooks (non-recursive)
- Extract, reconcile and duplicate-check invoices, then import the eligible ones
- Print per-invoice report lines and one SUMMARY line

``--export`` writes the unassigned units of the given orders to a batch sheet
instead of importing.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Context manager to provide a psycopg2 connection + cursor.

    接続情報の解決優先順位:
        1. `.env` で読み込まれた環境変数 (main() 冒頭で強制上書き済み)
             - DATABASE_URL / PGDSN があれば DSN 全体をそのまま使用
             - 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        2. config/import.yml の database セクション (不足分のフォールバック)
    """
    import psycopg2

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
    try:
        conn.autocommit = False  # 明示トランザクション境界 (store が BEGIN/COMMIT 実行)
        cur = conn.cursor()
        try:
            yield cur
        finally:
            cur.close()
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きし、PostgreSQL 接続情報を最優先化。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="invoice-console", description="Invoice workbook -> PostgreSQL importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (default: config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print detected columns & parsed invoices then exit")
    p.add_argument("--dry-run", action="store_true", help="Reconcile and report without writing")
    p.add_argument("--export", metavar="NAME", help="Export unassigned units of --orders to a batch sheet")
    p.add_argument("--orders", nargs="+", metavar="ORDER_NO", default=[], help="Order numbers for --export")
    p.add_argument("--assign-batch", metavar="BATCH", help="With --export: mark exported units as assigned to BATCH")
    args = p.parse_args(argv)
    if args.export and not args.orders:
        p.error("--export requires --orders")
    if args.assign_batch and not args.export:
        p.error("--assign-batch requires --export")
    return args


def _inspect_data(cfg: ImportConfig) -> int:
    try:
        paths = scan_workbooks(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not paths:
        print("inspect: no workbooks")
        return EXIT_SUCCESS_ALL
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            sheet = read_workbook(path)
            invoices = read_invoice_workbook(path)
        except WorkbookFormatError as e:
            print(f"  read_error: {e}")
            continue
        columns = {k: sheet.header[v] for k, v in map_columns(sheet.header).items() if v >= 0}
        print(f"  SHEET: {sheet.sheet_name} rows={len(sheet.rows)}")
        print(f"    columns={columns}")
        for inv in invoices:
            print(
                f"    invoice order_no={inv.order_no} customer={inv.customer_info.name!r} "
                f"items={len(inv.items)} delivery={inv.delivery_method!r}"
            )
    return EXIT_SUCCESS_ALL


def _report(logger: logging.Logger, report: RunReport) -> None:
    for invoice in report.invoices:
        for level, message in invoice_report_lines(invoice):
            logger.log(level, message)
    for outcome in report.result.failures():
        logger.error(f"order_no={outcome.order_no} import failed: {'; '.join(outcome.reasons)}")


def _export(logger: logging.Logger, cfg: ImportConfig, store: InvoiceStore, args: argparse.Namespace) -> int:
    fetched = store.fetch_units(args.orders, unassigned_only=True)
    if not fetched.success:
        logger.error(f"export: unit fetch failed: {fetched.error}")
        return EXIT_FATAL
    entries = [ExportUnit(**row) for row in fetched.data]
    if not entries:
        logger.warning(f"export: no unassigned units for orders {', '.join(args.orders)}")
        return EXIT_PARTIAL_FAILURE
    path = write_batch_export(entries, Path(cfg.export_directory), args.export)
    logger.info(f"export: {len(entries)} units written to {path}")

    if args.assign_batch:
        ids = [e.unit.id for e in entries if e.unit.id is not None]
        assigned = store.set_batch_assigned(ids, args.assign_batch)
        if not assigned.success:
            logger.error(f"export: batch assignment failed: {assigned.error}")
            return EXIT_PARTIAL_FAILURE
        logger.info(f"export: {len(ids)} units assigned to batch {args.assign_batch}")
    return EXIT_SUCCESS_ALL


def _run(logger: logging.Logger, cfg: ImportConfig, store: InvoiceStore | None, dry_run: bool) -> int:
    try:
        report = process_all(cfg, store, dry_run=dry_run)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    _report(logger, report)
    summary_line = render_summary_line(len(report.invoices), report.importable_count, report.result)
    # log_summary が "SUMMARY " を付与する
    log_summary(summary_line.removeprefix("SUMMARY "))
    return EXIT_SUCCESS_ALL if report.clean else EXIT_PARTIAL_FAILURE


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: 空リスト [] はそのまま使う (None のときのみ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_level(logging.DEBUG)
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(cfg)

    directory = Path(cfg.source_directory)
    if not args.export and not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    # DB 接続制御: テスト等で完全に無効化したい場合 DISABLE_DB_CONNECT=1
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> offline mode")
        if args.export:
            logger.error("export: requires a database connection")
            return EXIT_FATAL
        logger.info(f"Processing files from: {directory} (mode=offline)")
        return _run(logger, cfg, None, args.dry_run)

    with ExitStack() as stack:
        store: InvoiceStore | None = None
        try:
            store = InvoiceStore(stack.enter_context(_db_connection(cfg)))
        except Exception as db_e:
            if args.export:
                logger.error(f"export: DB connection failed: {db_e}")
                return EXIT_FATAL
            logger.info(f"DB connection failed -> fallback to offline mode: {db_e}")

        if args.export:
            return _export(logger, cfg, store, args)
        mode = "live" if store is not None else "offline"
        logger.info(f"Processing files from: {directory} (mode={mode})")
        return _run(logger, cfg, store, args.dry_run)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
