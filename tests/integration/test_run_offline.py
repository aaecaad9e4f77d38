from __future__ import annotations

import json
from pathlib import Path

from invoice_console.cli import main as cli_main

"""Offline (DISABLE_DB_CONNECT=1) runs: nothing is written, every invoice is reported."""


def test_offline_run_reports_and_logs_bad_files(write_config, temp_workdir: Path, write_workbook, invoice_row,
                                                offline, capsys):
    rows = [invoice_row(Type="Invoice", Num="2001", Name="Acme", Item="Slider Window", Qty=2, Via="")]
    write_workbook(temp_workdir / "data" / "april.xlsx", rows)
    (temp_workdir / "data" / "corrupt.xlsx").write_bytes(b"\x00\x01")
    (temp_workdir / "data" / "notes.txt").write_text("ignored", encoding="utf-8")

    code = cli_main([])
    out = capsys.readouterr().out

    assert code == 2
    assert "WARN order_no=2001 unknown delivery method: Empty/Missing" in out
    assert "SUMMARY invoices=1 importable=0 imported=0 failed=0 skipped=1 duplicates=0" in out

    (log_file,) = list((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert [r["error_type"] for r in records] == ["WORKBOOK_READ_ERROR"]
    assert records[0]["file"] == "corrupt.xlsx"
    assert records[0]["order_no"] == "<BATCH>"
