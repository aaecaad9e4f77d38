from __future__ import annotations

from pathlib import Path

import pytest

from invoice_console.config.loader import ImportConfig
from invoice_console.db.store import StoreError
from invoice_console.models.processing_result import ImportStatus, QueryResult
from invoice_console.services.orchestrator import ProcessingError, process_all, scan_workbooks


class FakeStore:
    def __init__(self, catalogs, existing=(), catalog_error=None, dup_error=None):
        self.catalogs = catalogs
        self.existing = list(existing)
        self.catalog_error = catalog_error
        self.dup_error = dup_error
        self.saved: list[str] = []

    def fetch_catalogs(self):
        if self.catalog_error:
            raise StoreError(self.catalog_error)
        return self.catalogs

    def find_existing_order_numbers(self, numbers):
        if self.dup_error:
            return QueryResult.failed(self.dup_error)
        return QueryResult.ok([{"order_no": n} for n in numbers if n in self.existing])

    def save_invoice(self, invoice):
        self.saved.append(invoice.order_no)
        return QueryResult.ok([{"id": len(self.saved)}])


@pytest.fixture()
def cfg(tmp_path: Path) -> ImportConfig:
    (tmp_path / "data").mkdir()
    return ImportConfig(source_directory=str(tmp_path / "data"), logs_directory=str(tmp_path / "logs"))


@pytest.fixture()
def two_invoices(cfg, write_workbook, invoice_row) -> Path:
    rows = [
        invoice_row(Type="Invoice", Num="1001", Name="Acme", Item="Slider Window", Qty=3, Color="White",
                    Frame="Vinyl", Via="Pickup"),
        invoice_row(Type="Invoice", Num="1002", Name="Beta", Item="Patio Door", Qty=1, Via="Pickup"),
    ]
    return write_workbook(Path(cfg.source_directory) / "march.xlsx", rows)


def test_scan_workbooks_filters(tmp_path: Path):
    for name in ["b.xlsx", "a.xlsm", "notes.txt", "~$a.xlsx"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "c.xlsx").write_bytes(b"")
    assert [p.name for p in scan_workbooks(tmp_path)] == ["a.xlsm", "b.xlsx"]


def test_scan_workbooks_missing_dir(tmp_path: Path):
    with pytest.raises(ProcessingError, match="Directory not found"):
        scan_workbooks(tmp_path / "missing")


def test_process_all_imports_and_flags_duplicates(cfg, two_invoices, catalogs):
    store = FakeStore(catalogs, existing=["1002"])
    report = process_all(cfg, store)
    assert [i.order_no for i in report.invoices] == ["1001", "1002"]
    assert report.importable_count == 1
    assert store.saved == ["1001"]
    assert report.result.imported == 1
    assert report.result.duplicates == 1
    assert report.clean is False


def test_process_all_clean_run(cfg, two_invoices, catalogs):
    report = process_all(cfg, FakeStore(catalogs))
    assert report.clean is True
    assert report.result.imported == 2
    assert not Path(cfg.logs_directory).exists()


def test_process_all_dry_run_writes_nothing(cfg, two_invoices, catalogs):
    store = FakeStore(catalogs)
    report = process_all(cfg, store, dry_run=True)
    assert store.saved == []
    assert report.result.skipped == 2
    assert {o.reasons for o in report.result.outcomes} == {("dry run",)}


def test_process_all_offline_uses_empty_catalogs(cfg, two_invoices):
    report = process_all(cfg, None)
    assert report.importable_count == 0
    assert report.invoices[0].unknown_items == ("Slider Window",)
    assert report.result.skipped == 2


def test_process_all_catalog_failure_reported(cfg, two_invoices, catalogs):
    report = process_all(cfg, FakeStore(catalogs, catalog_error="relation items does not exist"))
    assert report.catalog_error == "relation items does not exist"
    assert report.importable_count == 0
    log_files = list(Path(cfg.logs_directory).glob("errors-*.log"))
    assert len(log_files) == 1
    assert "CATALOG_FETCH_ERROR" in log_files[0].read_text(encoding="utf-8")


def test_process_all_duplicate_check_fails_open(cfg, two_invoices, catalogs):
    store = FakeStore(catalogs, existing=["1002"], dup_error="timeout")
    report = process_all(cfg, store)
    assert report.duplicate_check_error == "timeout"
    assert store.saved == ["1001", "1002"]
    assert report.clean is False


def test_process_all_bad_workbook_does_not_stop_run(cfg, two_invoices, catalogs):
    (Path(cfg.source_directory) / "broken.xlsx").write_bytes(b"not a workbook")
    report = process_all(cfg, FakeStore(catalogs))
    assert len(report.file_errors) == 1
    assert report.file_errors[0].startswith("broken.xlsx:")
    assert report.result.imported == 2
    statuses = {o.status for o in report.result.outcomes}
    assert statuses == {ImportStatus.IMPORTED}
