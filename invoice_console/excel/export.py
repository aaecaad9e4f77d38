from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ..models.unit_record import UnitRecord

"""Batch sheet export.

Selected units map 1:1 to rows of the production batch sheet. The column
set is fixed by the downstream cutting software.
"""

__all__ = [
    "EXPORT_COLUMNS",
    "EXPORT_SHEET_NAME",
    "ExportUnit",
    "to_export_row",
    "build_export_frame",
    "export_filename",
    "write_batch_export",
]

EXPORT_COLUMNS = ["Customer", "ID", "Style", "W", "H", "FH", "Frame", "Glass", "Argon", "Grid", "Color"]
EXPORT_SHEET_NAME = "Batch Items"
ARGON_STORED_VALUE = "YES"  # 大文字の "YES" のみ (case-sensitive)


@dataclass(frozen=True)
class ExportUnit:
    """A stored unit together with the invoice columns the sheet needs."""
    unit: UnitRecord
    customer_name: str = ""
    order_no: str = ""


def to_export_row(entry: ExportUnit) -> dict[str, str]:
    unit = entry.unit
    return {
        "Customer": f"{entry.customer_name or ''} {entry.order_no or ''}".strip(),
        "ID": "",
        "Style": unit.name or "",
        "W": unit.width or "",
        "H": unit.height or "",
        "FH": unit.additional_dimension or "",
        "Frame": unit.frame or "",
        "Glass": unit.glass_option or "",
        "Argon": "Argon" if unit.argon == ARGON_STORED_VALUE else "",
        "Grid": unit.grid_style or "",
        "Color": unit.color or "",
    }


def build_export_frame(entries: Iterable[ExportUnit]) -> pd.DataFrame:
    return pd.DataFrame([to_export_row(e) for e in entries], columns=EXPORT_COLUMNS)


def export_filename(name: str) -> str:
    name = name.strip()
    return name if name.endswith(".xlsx") else f"{name}.xlsx"


def write_batch_export(entries: Iterable[ExportUnit], directory: Path, name: str) -> Path:
    """Write the batch sheet and return its path (directory is created if needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(name)
    frame = build_export_frame(entries)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=EXPORT_SHEET_NAME, index=False)
    return path
