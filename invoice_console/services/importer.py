from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.invoice import Invoice
from ..models.processing_result import BatchImportResult, ImportStatus, InvoiceOutcome, QueryResult
from .progress import ProgressTracker
from .reconciliation import import_blockers

"""Batch import of reconciled invoices.

Each invoice is attempted on its own: blocked invoices are skipped with
their reasons, storage failures are recorded and the run continues with the
next invoice. Partial success is the normal case, not an error.
"""

__all__ = [
    "SaveInvoice",
    "import_batch",
]

logger = logging.getLogger(__name__)

# adapter の保存関数 (InvoiceStore.save_invoice)
SaveInvoice = Callable[[Invoice], QueryResult]


def _import_one(
    invoice: Invoice, save: SaveInvoice | None, error_log: ErrorLogBuffer, offline_reason: str
) -> InvoiceOutcome:
    started = datetime.now(UTC)

    def _elapsed() -> float:
        return (datetime.now(UTC) - started).total_seconds()

    issues = import_blockers(invoice)
    if issues:
        return InvoiceOutcome(
            order_no=invoice.order_no,
            status=ImportStatus.SKIPPED,
            reasons=tuple(i.describe() for i in issues),
            elapsed_seconds=_elapsed(),
        )

    if save is None:
        # オフライン (DB 無し) 実行: 書き込みは行わない
        return InvoiceOutcome(
            order_no=invoice.order_no,
            status=ImportStatus.SKIPPED,
            reasons=(offline_reason,),
            elapsed_seconds=_elapsed(),
        )

    try:
        result = save(invoice)
    except Exception as e:
        result = QueryResult.failed(str(e))

    if not result.success:
        message = result.error or "unknown storage error"
        error_log.append(
            ErrorRecord.create(
                file=invoice.source_file,
                order_no=invoice.order_no,
                error_type="INVOICE_SAVE_ERROR",
                message=message,
            )
        )
        logger.error(f"import failed order_no={invoice.order_no}: {message}")
        return InvoiceOutcome(
            order_no=invoice.order_no,
            status=ImportStatus.FAILED,
            reasons=(message,),
            elapsed_seconds=_elapsed(),
        )

    invoice_id = result.data[0].get("id") if result.data else None
    return InvoiceOutcome(
        order_no=invoice.order_no,
        status=ImportStatus.IMPORTED,
        invoice_id=invoice_id,
        elapsed_seconds=_elapsed(),
    )


def import_batch(
    invoices: Sequence[Invoice],
    save: SaveInvoice | None,
    error_log: ErrorLogBuffer | None = None,
    offline_reason: str = "no database connection",
) -> BatchImportResult:
    """Import every eligible invoice independently.

    Args:
        invoices: Reconciled invoices (duplicate flags already applied)
        save: Storage write for one invoice (None = offline, nothing written)
        error_log: Buffer receiving one record per failed write
        offline_reason: Skip reason recorded for eligible invoices when save is None

    Returns:
        BatchImportResult with one outcome per invoice, in input order
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()

    outcomes: list[InvoiceOutcome] = []
    with ProgressTracker(len(invoices)) as progress:
        for invoice in invoices:
            outcome = _import_one(invoice, save, error_log, offline_reason)
            outcomes.append(outcome)
            progress.advance(invoice.order_no, outcome.status)
    counts = progress.counts

    end_time = datetime.now(UTC)
    return BatchImportResult(
        imported=counts[ImportStatus.IMPORTED],
        failed=counts[ImportStatus.FAILED],
        skipped=counts[ImportStatus.SKIPPED],
        duplicates=sum(1 for inv in invoices if inv.is_duplicate),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        outcomes=outcomes,
    )
