from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.invoice import CustomerInfo, Invoice, RawItem

"""Spreadsheet row extractor (best-effort upstream adapter).

Accounting exports differ in column order and header wording, so columns
are located by case-insensitive substring match on the header text. The
first non-empty row is the header. Rows are grouped into invoices by the
invoice-number column.

Output is plain Invoice records with RawItems; no catalog matching happens
here.
"""

__all__ = [
    "WorkbookFormatError",
    "COLUMN_RULES",
    "SheetData",
    "read_workbook",
    "map_columns",
    "extract_invoices",
    "read_invoice_workbook",
]

logger = logging.getLogger(__name__)

INVOICE_ROW_TYPE = "invoice"
# この列数を超えるセルを持つ行が2行以上あるシートを採用
MIN_CELLS_PER_ROW = 5


class WorkbookFormatError(Exception):
    """Raised when a workbook has no usable header + data rows."""


@dataclass
class SheetData:
    sheet_name: str
    header: list[str]
    rows: list[list[str]]  # 空行除去済み、全セル文字列化済み


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda h: any(n in h for n in needles)


def _is_po(h: str) -> bool:
    return "p.o." in h or "p. o." in h or h == "po" or h.startswith("po ") or h.startswith("po#")


# (field, predicate over lowercased header). Order inside a predicate does
# not matter; the first matching column wins.
COLUMN_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("type", lambda h: "type" in h and "glass" not in h),
    ("date", lambda h: "date" in h and "due" not in h and "deliver" not in h),
    ("num", lambda h: ("num" in h or "#" in h) and not _is_po(h) and "phone" not in h),
    ("po_number", lambda h: _is_po(h)),
    ("name", lambda h: "name" in h and "file" not in h),
    ("due_date", _has("due")),
    ("item", _has("item")),
    ("qty", _has("qty", "quantity")),
    ("glass_option", _has("glass")),
    ("grid_style", _has("grid", "gride")),
    ("frame", _has("frame")),
    ("color", _has("color", "colour")),
    ("argon", _has("argon")),
    ("width", lambda h: h in ("w", "width") or "width" in h),
    ("height", lambda h: h in ("h", "height") or "height" in h),
    ("additional_dimension", lambda h: h in ("fh", "p/v") or "additional" in h),
    ("delivery_method", _has("via", "delivery method", "ship method")),
    ("delivery_date", lambda h: "deliver" in h and "date" in h),
    ("paid_status", _has("paid")),
    ("phone", _has("phone")),
    ("ship_address1", lambda h: "ship" in h and "address" in h and "1" in h),
    ("ship_address2", lambda h: "ship" in h and "address" in h and "2" in h),
    ("ship_city", lambda h: "ship" in h and "city" in h),
    ("ship_state", lambda h: "ship" in h and "state" in h),
    ("ship_zip", lambda h: "ship" in h and "zip" in h),
]


def _cell_text(value: Any) -> str:
    """Cell -> display string (NaN -> "", 3.0 -> "3", dates -> YYYY-MM-DD)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (pd.Timestamp, dt.datetime)):
        if pd.isna(value):
            return ""
        return value.strftime("%Y-%m-%d")
    if isinstance(value, dt.date):
        return value.isoformat()
    return str(value).strip()


def _non_empty_rows(df: pd.DataFrame) -> list[list[str]]:
    rows: list[list[str]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [_cell_text(v) for v in raw]
        if any(c != "" for c in cells):
            rows.append(cells)
    return rows


def read_workbook(path: Path) -> SheetData:
    """Read the invoice sheet of a workbook.

    Picks the first sheet with more than one row holding more than
    MIN_CELLS_PER_ROW non-empty cells, falling back to the first sheet.

    Raises:
        WorkbookFormatError: unreadable file, or fewer than a header row and
            one data row
    """
    try:
        sheets: dict[str, pd.DataFrame] = pd.read_excel(path, sheet_name=None, header=None, dtype=object)
    except Exception as e:
        raise WorkbookFormatError(f"cannot read workbook {path.name}: {e}") from e
    if not sheets:
        raise WorkbookFormatError(f"workbook has no sheets: {path.name}")

    chosen_name: str | None = None
    chosen_rows: list[list[str]] = []
    for name, df in sheets.items():
        rows = _non_empty_rows(df)
        wide = [r for r in rows if sum(1 for c in r if c) > MIN_CELLS_PER_ROW]
        if len(wide) > 1:
            chosen_name, chosen_rows = str(name), rows
            break
    if chosen_name is None:
        first = next(iter(sheets))
        chosen_name, chosen_rows = str(first), _non_empty_rows(sheets[first])
        logger.debug(f"{path.name}: no wide sheet found, falling back to '{chosen_name}'")

    if len(chosen_rows) < 2:
        raise WorkbookFormatError(
            "Excel file must contain at least a header row and one data row"
        )
    return SheetData(sheet_name=chosen_name, header=chosen_rows[0], rows=chosen_rows[1:])


def map_columns(header: list[str]) -> dict[str, int]:
    """Map logical field -> column index (-1 when not found)."""
    lowered = [h.lower() for h in header]
    mapping: dict[str, int] = {}
    for field_name, predicate in COLUMN_RULES:
        mapping[field_name] = next((i for i, h in enumerate(lowered) if h and predicate(h)), -1)
    return mapping


def _get(row: list[str], columns: dict[str, int], key: str) -> str:
    idx = columns.get(key, -1)
    if idx < 0 or idx >= len(row):
        return ""
    return row[idx]


def _ship_address(row: list[str], columns: dict[str, int]) -> str:
    parts = [
        _get(row, columns, "ship_address1"),
        _get(row, columns, "ship_address2"),
        _get(row, columns, "ship_city"),
        _get(row, columns, "ship_state"),
        _get(row, columns, "ship_zip"),
    ]
    return " ".join(p.strip() for p in parts if p and p.strip())


def _argon(value: str) -> str:
    # 保存形式は "yes" / "" に統一
    return "yes" if value.strip().lower() in ("yes", "y", "argon", "true", "1") else ""


def extract_invoices(sheet: SheetData, source_file: str = "") -> list[Invoice]:
    """Group data rows into invoices keyed by invoice number."""
    columns = map_columns(sheet.header)
    if all(columns[k] < 0 for k in ("type", "num", "name")):
        logger.warning(
            f"{source_file or sheet.sheet_name}: no type/num/name columns found; headers={sheet.header}"
        )

    headers: dict[str, dict[str, Any]] = {}
    items: dict[str, list[RawItem]] = {}
    for offset, row in enumerate(sheet.rows):
        excel_row = offset + 2
        if columns["type"] >= 0 and _get(row, columns, "type").lower() != INVOICE_ROW_TYPE:
            continue

        order_no = _get(row, columns, "num") if columns["num"] >= 0 else ""
        if not order_no:
            order_no = f"Row_{excel_row}"

        if order_no not in headers:
            name = _get(row, columns, "name")
            ship_address = _ship_address(row, columns)
            headers[order_no] = {
                "order_no": order_no,
                "po_number": _get(row, columns, "po_number"),
                "customer_info": CustomerInfo(
                    name=name,
                    phone=_get(row, columns, "phone"),
                    address=ship_address,
                ),
                "order_date": _get(row, columns, "date"),
                "due_date": _get(row, columns, "due_date"),
                "delivery_date": _get(row, columns, "delivery_date"),
                "delivery_method": _get(row, columns, "delivery_method"),
                "paid_status": _get(row, columns, "paid_status"),
                "shipping_address": ship_address,
                "source_file": source_file,
            }
            items[order_no] = []

        item = RawItem(
            name=_get(row, columns, "item"),
            quantity=_get(row, columns, "qty"),
            width=_get(row, columns, "width"),
            height=_get(row, columns, "height"),
            additional_dimension=_get(row, columns, "additional_dimension"),
            color=_get(row, columns, "color"),
            argon=_argon(_get(row, columns, "argon")),
            glass_option=_get(row, columns, "glass_option"),
            grid_style=_get(row, columns, "grid_style"),
            frame=_get(row, columns, "frame"),
        )
        if item.name or item.quantity:
            items[order_no].append(item)
        else:
            logger.debug(f"row {excel_row}: no item data")

    return [Invoice(**fields, items=tuple(items[key])) for key, fields in headers.items()]


def read_invoice_workbook(path: Path) -> list[Invoice]:
    sheet = read_workbook(path)
    invoices = extract_invoices(sheet, source_file=path.name)
    logger.debug(f"{path.name}: sheet '{sheet.sheet_name}' -> {len(invoices)} invoices")
    return invoices
