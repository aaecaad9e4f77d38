from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..config.loader import ImportConfig
from ..db.store import InvoiceStore, StoreError
from ..excel.reader import WorkbookFormatError, read_invoice_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.catalog import CatalogSnapshot
from ..models.error_record import BATCH_LEVEL, ErrorRecord
from ..models.invoice import Invoice
from ..models.processing_result import BatchImportResult
from .importer import import_batch
from .reconciliation import importable, reconcile_batch

"""Run orchestration: scan -> extract -> reconcile -> duplicate check -> import.

Upstream failures (unreadable workbook, catalog fetch, duplicate lookup)
never stop the run. They are logged, written to the error log and returned
in RunReport next to whatever results could still be produced.
"""

__all__ = [
    "WORKBOOK_SUFFIXES",
    "ProcessingError",
    "RunReport",
    "scan_workbooks",
    "load_invoices",
    "load_catalogs",
    "process_all",
]

logger = logging.getLogger(__name__)

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")


class ProcessingError(Exception):
    """Fatal error that prevents a run from starting."""


@dataclass(frozen=True)
class RunReport:
    invoices: list[Invoice]
    importable_count: int
    result: BatchImportResult
    file_errors: list[str] = field(default_factory=list)
    catalog_error: str | None = None
    duplicate_check_error: str | None = None

    @property
    def blocked_count(self) -> int:
        return len(self.invoices) - self.importable_count

    @property
    def clean(self) -> bool:
        """True when every invoice was importable, nothing failed and no upstream call failed."""
        return (
            self.blocked_count == 0
            and self.result.failed == 0
            and not self.file_errors
            and self.catalog_error is None
            and self.duplicate_check_error is None
        )


def scan_workbooks(directory: Path) -> list[Path]:
    """Workbooks (.xlsx / .xlsm) directly inside ``directory``, sorted by name.

    Raises:
        ProcessingError: directory missing, not a directory or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in WORKBOOK_SUFFIXES and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def load_invoices(paths: list[Path], error_log: ErrorLogBuffer) -> tuple[list[Invoice], list[str]]:
    """Extract invoices from every workbook; unreadable files are reported, not fatal."""
    invoices: list[Invoice] = []
    errors: list[str] = []
    for path in paths:
        try:
            found = read_invoice_workbook(path)
        except WorkbookFormatError as e:
            message = f"Failed to parse Excel file: {e}"
            logger.error(f"{path.name}: {message}")
            error_log.append(ErrorRecord.create(path.name, BATCH_LEVEL, "WORKBOOK_READ_ERROR", message))
            errors.append(f"{path.name}: {message}")
            continue
        logger.info(f"{path.name}: {len(found)} invoices")
        invoices.extend(found)
    return invoices, errors


def load_catalogs(store: InvoiceStore | None, error_log: ErrorLogBuffer) -> tuple[CatalogSnapshot, str | None]:
    """Catalog snapshot, or an empty one plus the error when the fetch failed."""
    if store is None:
        return CatalogSnapshot.empty(), None
    try:
        return store.fetch_catalogs(), None
    except StoreError as e:
        logger.error(f"{e} -> continuing with empty catalogs")
        error_log.append(ErrorRecord.create("", BATCH_LEVEL, "CATALOG_FETCH_ERROR", str(e)))
        return CatalogSnapshot.empty(), str(e)


def process_all(
    config: ImportConfig,
    store: InvoiceStore | None = None,
    *,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> RunReport:
    """Process every workbook in the configured source directory.

    Args:
        config: Loaded configuration
        store: Storage adapter (None = offline: empty catalogs, no writes)
        dry_run: Reconcile and report without writing
        error_log: Error buffer (flushed by this function)

    Raises:
        ProcessingError: source directory cannot be scanned
    """
    error_log = error_log if error_log is not None else ErrorLogBuffer(Path(config.logs_directory))
    paths = scan_workbooks(Path(config.source_directory))
    logger.info(f"workbooks found: {len(paths)}")

    invoices, file_errors = load_invoices(paths, error_log)
    catalogs, catalog_error = load_catalogs(store, error_log)

    lookup = store.find_existing_order_numbers if store is not None else None
    batch = reconcile_batch(invoices, catalogs, lookup)
    if batch.duplicate_check.error is not None:
        error_log.append(
            ErrorRecord.create("", BATCH_LEVEL, "DUPLICATE_CHECK_ERROR", batch.duplicate_check.error)
        )

    save = store.save_invoice if (store is not None and not dry_run) else None
    offline_reason = "dry run" if dry_run else "no database connection"
    result = import_batch(batch.invoices, save, error_log, offline_reason=offline_reason)

    try:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")
    except OSError as e:
        logger.warning(f"error log flush failed: {e}")

    return RunReport(
        invoices=batch.invoices,
        importable_count=len(importable(batch.invoices)),
        result=result,
        file_errors=file_errors,
        catalog_error=catalog_error,
        duplicate_check_error=batch.duplicate_check.error,
    )
