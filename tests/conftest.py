# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from invoice_console.logging.init import reset_logging
from invoice_console.models.catalog import (
    CatalogSnapshot,
    ColorEntry,
    DeliveryMethodEntry,
    FrameStyleEntry,
    GlassOptionEntry,
    ItemEntry,
)

INVOICE_HEADER = [
    "Type", "Date", "Num", "P. O. #", "Name", "Due Date", "Item", "Qty",
    "Width", "Height", "FH", "Color", "Frame", "Glass", "Grid", "Argon",
    "Via", "Ship Address 1", "Ship City", "Ship State", "Ship Zip", "Phone",
]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
logs_directory: ./logs
export_directory: ./exports
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def offline(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


@pytest.fixture()
def catalogs() -> CatalogSnapshot:
    return CatalogSnapshot(
        items=(
            ItemEntry(name="Slider Window", item_type="Window", order_needed=False, id=1),
            ItemEntry(name="Patio Door", item_type="Door", order_needed=False, id=2),
            ItemEntry(name="Custom Arch", item_type="Window", order_needed=True, id=3),
            ItemEntry(name="Screen Kit", item_type="Screen", order_needed=False, id=4),
            ItemEntry(name="Delivery Fee", item_type="Other", order_needed=False, id=5),
        ),
        colors=(ColorEntry(color_name="White", id=1), ColorEntry(color_name="Almond", id=2)),
        frame_styles=(FrameStyleEntry(style_name="Vinyl", id=1),),
        glass_options=(GlassOptionEntry(glass_type="tempered", order_needed=True, id=1),),
        delivery_methods=(DeliveryMethodEntry(name="Pickup", id=1), DeliveryMethodEntry(name="Delivery", id=2)),
    )


@pytest.fixture()
def invoice_row():
    """Build one data row in INVOICE_HEADER order (unspecified cells empty)."""
    def _row(**values) -> list:
        row = {h: None for h in INVOICE_HEADER}
        row.update(values)
        return [row[h] for h in INVOICE_HEADER]
    return _row


@pytest.fixture()
def write_workbook():
    """Write header + rows to an .xlsx with pandas (header as the first row)."""
    def _write(path: Path, rows: list[list], header: list[str] | None = None, sheet_name: str = "Sheet1") -> Path:
        frame = pd.DataFrame([header or INVOICE_HEADER, *rows])
        frame.to_excel(path, sheet_name=sheet_name, header=False, index=False)
        return path
    return _write
