from __future__ import annotations

import datetime as dt
import logging

from ..models.import_issue import Severity
from ..models.invoice import Invoice
from ..models.processing_result import BatchImportResult
from .reconciliation import import_blockers

"""Summary line and per-invoice report rendering.

SUMMARY format:
SUMMARY invoices={n} importable={n} imported={n} failed={n} skipped={n}
duplicates={n} elapsed_sec={x}
"""

__all__ = [
    "NOT_AVAILABLE",
    "display_date",
    "format_elapsed",
    "render_summary_line",
    "invoice_report_lines",
]

NOT_AVAILABLE = "N/A"

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")


def display_date(value: str | None) -> str:
    """Date for display: ``Mon D, YYYY``; N/A when empty; raw text when unparseable."""
    if value is None or not str(value).strip():
        return NOT_AVAILABLE
    text = str(value).strip()
    candidate = text.split("T")[0].split(" ")[0]
    for fmt in _DATE_FORMATS:
        try:
            parsed = dt.datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
        return f"{parsed:%b} {parsed.day}, {parsed.year}"
    return text


def format_elapsed(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # 指数表記を避ける
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_invoices: int, importable_count: int, result: BatchImportResult) -> str:
    """Render the SUMMARY line for one run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = BatchImportResult(imported=2, failed=0, skipped=1, duplicates=1,
        ...     start_time=t, end_time=t, elapsed_seconds=2.0)
        >>> render_summary_line(3, 2, r)
        'SUMMARY invoices=3 importable=2 imported=2 failed=0 skipped=1 duplicates=1 elapsed_sec=2'
    """
    return (
        f"SUMMARY invoices={total_invoices} "
        f"importable={importable_count} "
        f"imported={result.imported} "
        f"failed={result.failed} "
        f"skipped={result.skipped} "
        f"duplicates={result.duplicates} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )


def invoice_report_lines(invoice: Invoice) -> list[tuple[int, str]]:
    """Log level + message lines describing one invoice.

    The header line is INFO; every blocker follows as WARNING, or ERROR for a
    duplicate order number.
    """
    customer = invoice.customer_info.name or NOT_AVAILABLE
    lines: list[tuple[int, str]] = [
        (
            logging.INFO,
            f"order_no={invoice.order_no} customer={customer} "
            f"due={display_date(invoice.due_date)} wdgsp={invoice.wdgsp_string} "
            f"qty={invoice.total_quantity} special_order={'yes' if invoice.has_special_order else 'no'}",
        )
    ]
    for issue in import_blockers(invoice):
        level = logging.ERROR if issue.severity is Severity.ERROR else logging.WARNING
        lines.append((level, f"order_no={invoice.order_no} {issue.describe()}"))
    for special in invoice.special_order_items:
        extra = f" glass={special.glass_option}" if special.glass_option else ""
        lines.append(
            (
                logging.INFO,
                f"order_no={invoice.order_no} special order ({special.type.value}): "
                f"{special.name} x{special.quantity}{extra}",
            )
        )
    return lines
