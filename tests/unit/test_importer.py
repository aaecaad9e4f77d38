from __future__ import annotations

from invoice_console.logging.error_log import ErrorLogBuffer
from invoice_console.models.invoice import Invoice
from invoice_console.models.processing_result import ImportStatus, QueryResult
from invoice_console.services.importer import import_batch


def _ok_save(saved: list):
    def save(invoice: Invoice) -> QueryResult:
        saved.append(invoice.order_no)
        return QueryResult.ok([{"id": 100 + len(saved), "units": 1}])
    return save


def test_import_batch_mixed_outcomes(tmp_path):
    invoices = [
        Invoice(order_no="1"),
        Invoice(order_no="2", is_duplicate=True),
        Invoice(order_no="3", unknown_items=("X",)),
        Invoice(order_no="4", source_file="b.xlsx"),
    ]
    saved: list[str] = []

    def save(invoice: Invoice) -> QueryResult:
        if invoice.order_no == "4":
            return QueryResult.failed("constraint violation")
        return _ok_save(saved)(invoice)

    log = ErrorLogBuffer(tmp_path)
    result = import_batch(invoices, save, log)

    assert (result.imported, result.failed, result.skipped, result.duplicates) == (1, 1, 2, 1)
    assert result.total == 4
    assert saved == ["1"]
    statuses = [o.status for o in result.outcomes]
    assert statuses == [ImportStatus.IMPORTED, ImportStatus.SKIPPED, ImportStatus.SKIPPED, ImportStatus.FAILED]
    assert result.outcomes[0].invoice_id == 101
    assert result.outcomes[1].reasons == ("duplicate order: 2",)
    assert result.outcomes[2].reasons == ("unknown items: X",)
    assert result.elapsed_seconds >= 0
    assert [o.order_no for o in result.failures()] == ["4"]

    (record,) = log.records()
    assert record.order_no == "4"
    assert record.file == "b.xlsx"
    assert record.error_type == "INVOICE_SAVE_ERROR"
    assert record.message == "constraint violation"


def test_import_batch_save_exception_recorded(tmp_path):
    def save(invoice):
        raise RuntimeError("connection lost")

    log = ErrorLogBuffer(tmp_path)
    result = import_batch([Invoice(order_no="1"), Invoice(order_no="2")], save, log)
    assert result.failed == 2
    assert [r.message for r in log.records()] == ["connection lost", "connection lost"]


def test_import_batch_offline_skips_with_reason():
    result = import_batch([Invoice(order_no="1")], None, offline_reason="dry run")
    assert result.skipped == 1
    assert result.outcomes[0].reasons == ("dry run",)
    assert result.failures() == []


def test_import_batch_empty():
    result = import_batch([], None)
    assert result.total == 0
    assert result.outcomes == []
