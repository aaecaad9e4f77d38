from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.catalog import (
    CatalogSnapshot,
    ColorEntry,
    DeliveryMethodEntry,
    FrameStyleEntry,
    GlassOptionEntry,
    ItemEntry,
)
from ..models.invoice import Invoice
from ..models.processing_result import QueryResult
from ..models.unit_record import UnitRecord
from ..services.units import UNASSIGNED_MARKER, batch_status, expand
from .batch_insert import batch_insert

"""PostgreSQL persistence adapter.

Maps in-flight invoices to the ``invoices`` / ``order_items`` /
``special_order_items`` tables and reads the reference catalogs.

Every public call returns a QueryResult (or raises StoreError for the
catalog snapshot) instead of letting driver exceptions escape into a batch.
One invoice (invoice row + units + special orders) is written in one
transaction; batches are not transactional across invoices.
"""

__all__ = [
    "StoreError",
    "InvoiceStore",
    "ORDER_ITEM_COLUMNS",
]


logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


ORDER_ITEM_COLUMNS = [
    "invoice_id",
    "item_name",
    "quantity",
    "width",
    "height",
    "additional_dimension",
    "color",
    "frame",
    "glass_option",
    "grid_style",
    "argon",
    "requires_special_order",
    "unit_index",
    "original_quantity",
    "batch_assigned",
]


SPECIAL_ORDER_COLUMNS = ["invoice_id", "item_name", "quantity", "glass_option", "order_type", "order_status"]


_CATALOG_QUERIES = {
    "items": "SELECT id, name, item_type, order_needed FROM items",
    "colors": "SELECT id, color_name FROM item_colors",
    "frame_styles": "SELECT id, style_name FROM frame_styles",
    "glass_options": "SELECT id, glass_type, order_needed FROM glass_options",
    "delivery_methods": "SELECT id, name FROM delivery_methods",
}


def _invoice_row(invoice: Invoice) -> dict[str, Any]:
    return {
        "order_no": invoice.order_no,
        "po_number": invoice.po_number,
        "order_date": invoice.order_date or None,
        "due_date": invoice.due_date or None,
        "delivery_date": invoice.delivery_date or None,
        "delivery_method": invoice.delivery_method,
        "paid_status": invoice.paid_status,
        "shipping_address": invoice.shipping_address,
        "customer_name": invoice.customer_info.name,
        "customer_phone": invoice.customer_info.phone,
        "customer_address": invoice.customer_info.address,
        "total_quantity": invoice.total_quantity or 0,
        "wdgsp_string": invoice.wdgsp_string,
        "has_special_order": invoice.has_special_order,
        "glass_order_needed": invoice.glass_order_needed,
        "item_order_needed": invoice.item_order_needed,
        "processing_status": "success",
    }


def _unit_row(invoice_id: int, unit: UnitRecord) -> list[Any]:
    return [
        invoice_id,
        unit.name,
        1,
        unit.width,
        unit.height,
        unit.additional_dimension,
        unit.color,
        unit.frame,
        unit.glass_option,
        unit.grid_style,
        unit.argon,
        unit.requires_special_order,
        unit.unit_index,
        unit.original_quantity,
        unit.batch_assigned or None,
    ]


def _unit_from_row(row: dict[str, Any]) -> UnitRecord:
    return UnitRecord(
        name=row.get("item_name") or "",
        quantity=1,
        width=row.get("width") or "",
        height=row.get("height") or "",
        additional_dimension=row.get("additional_dimension") or "",
        color=row.get("color") or "",
        argon=row.get("argon") or "",
        glass_option=row.get("glass_option") or "",
        grid_style=row.get("grid_style") or "",
        frame=row.get("frame") or "",
        requires_special_order=bool(row.get("requires_special_order")),
        unit_index=row.get("unit_index") or 1,
        original_quantity=row.get("original_quantity") or 1,
        parent_item_id=row.get("parent_item_id"),
        batch_assigned=row.get("batch_assigned"),
        id=row.get("id"),
    )


class InvoiceStore:
    """Storage operations over one psycopg2 cursor (autocommit off)."""

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _rows(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        self.cursor.execute(sql, params)
        names = [d[0] for d in self.cursor.description]
        return [dict(zip(names, r, strict=False)) for r in self.cursor.fetchall()]

    def _rollback(self) -> None:
        try:
            self.cursor.execute("ROLLBACK")
        except Exception as e:  # pragma: no cover
            logger.debug(f"rollback failed: {e}")

    # --- reads -----------------------------------------------------------

    def fetch_catalogs(self) -> CatalogSnapshot:
        """Read all reference catalogs.

        Raises:
            StoreError: any catalog query failed (callers fall back to an
                empty snapshot and report the failure)
        """
        try:
            items = self._rows(_CATALOG_QUERIES["items"])
            colors = self._rows(_CATALOG_QUERIES["colors"])
            frames = self._rows(_CATALOG_QUERIES["frame_styles"])
            glass = self._rows(_CATALOG_QUERIES["glass_options"])
            methods = self._rows(_CATALOG_QUERIES["delivery_methods"])
        except Exception as e:
            self._rollback()
            raise StoreError(f"catalog fetch failed: {e}") from e
        return CatalogSnapshot(
            items=tuple(
                ItemEntry(name=r["name"], item_type=r["item_type"] or "", order_needed=bool(r["order_needed"]), id=r["id"])
                for r in items
            ),
            colors=tuple(ColorEntry(color_name=r["color_name"], id=r["id"]) for r in colors),
            frame_styles=tuple(FrameStyleEntry(style_name=r["style_name"], id=r["id"]) for r in frames),
            glass_options=tuple(
                GlassOptionEntry(glass_type=r["glass_type"], order_needed=bool(r["order_needed"]), id=r["id"])
                for r in glass
            ),
            delivery_methods=tuple(DeliveryMethodEntry(name=r["name"], id=r["id"]) for r in methods),
        )

    def find_existing_order_numbers(self, order_numbers: list[str]) -> QueryResult:
        if not order_numbers:
            return QueryResult.ok([])
        try:
            rows = self._rows("SELECT order_no FROM invoices WHERE order_no = ANY(%s)", (list(order_numbers),))
        except Exception as e:
            self._rollback()
            return QueryResult.failed(str(e))
        return QueryResult.ok(rows)

    def fetch_units(self, order_numbers: list[str], unassigned_only: bool = False) -> QueryResult:
        """Stored units of the given invoices, joined with customer name and order no.

        ``unassigned_only`` keeps units whose batch_assigned is NULL, blank or 'N/A'.
        Returns QueryResult whose data rows are ExportUnit-shaped dicts
        (``unit``, ``customer_name``, ``order_no``).
        """
        sql = (
            "SELECT oi.*, inv.customer_name, inv.order_no FROM order_items oi "
            "JOIN invoices inv ON inv.id = oi.invoice_id "
            "WHERE inv.order_no = ANY(%s)"
        )
        params: list[Any] = [list(order_numbers)]
        if unassigned_only:
            sql += " AND (oi.batch_assigned IS NULL OR btrim(oi.batch_assigned) = '' OR oi.batch_assigned = %s)"
            params.append(UNASSIGNED_MARKER)
        sql += " ORDER BY inv.order_no, oi.id"
        try:
            rows = self._rows(sql, params)
        except Exception as e:
            self._rollback()
            return QueryResult.failed(str(e))
        return QueryResult.ok(
            [
                {
                    "unit": _unit_from_row(r),
                    "customer_name": r.get("customer_name") or "",
                    "order_no": r.get("order_no") or "",
                }
                for r in rows
            ]
        )

    def fetch_batch_statuses(self, order_numbers: list[str]) -> QueryResult:
        """Per-invoice batch assignment status.

        data rows: ``{"order_no", "all_assigned", "assigned_count", "total_count"}``
        in the order the invoices were requested; invoices without stored
        units report ``all_assigned=False`` with zero counts.
        """
        fetched = self.fetch_units(order_numbers)
        if not fetched.success:
            return fetched
        by_order: dict[str, list[UnitRecord]] = {no: [] for no in order_numbers}
        for row in fetched.data:
            by_order.setdefault(row["order_no"], []).append(row["unit"])
        rows = []
        for order_no, units in by_order.items():
            status = batch_status(units)
            rows.append(
                {
                    "order_no": order_no,
                    "all_assigned": status.all_assigned,
                    "assigned_count": status.assigned_count,
                    "total_count": status.total_count,
                }
            )
        return QueryResult.ok(rows)

    # --- writes ----------------------------------------------------------

    def save_invoice(self, invoice: Invoice) -> QueryResult:
        """Insert invoice + units + special orders in one transaction.

        Returns QueryResult with ``data=[{"id": <invoice id>, "units": n}]``.
        """
        try:
            self.cursor.execute("BEGIN")
            invoice_id = self._insert_invoice(invoice)
            units = expand(invoice.items)
            unit_count = self._insert_units(invoice_id, units)
            self._insert_special_orders(invoice_id, invoice)
            self.cursor.execute("COMMIT")
        except Exception as e:
            self._rollback()
            return QueryResult.failed(f"Failed to save invoice {invoice.order_no}: {e}")
        return QueryResult.ok([{"id": invoice_id, "units": unit_count}])

    def _insert_invoice(self, invoice: Invoice) -> int:
        row = _invoice_row(invoice)
        cols = ",".join(f'"{c}"' for c in row)
        placeholders = ",".join(["%s"] * len(row))
        self.cursor.execute(
            f"INSERT INTO invoices ({cols}) VALUES ({placeholders}) RETURNING id",
            list(row.values()),
        )
        return self.cursor.fetchone()[0]

    def _insert_units(self, invoice_id: int, units: list[UnitRecord]) -> int:
        result = batch_insert(
            self.cursor,
            "order_items",
            ORDER_ITEM_COLUMNS,
            (_unit_row(invoice_id, u) for u in units),
            returning="id",
        )
        ids = [r[0] for r in result.returned_values or []]
        # 同一明細のユニットは先頭ユニットの id を parent_item_id として共有
        parent_updates: list[tuple[int, int]] = []
        parent_id: int | None = None
        for unit, unit_id in zip(units, ids, strict=False):
            if unit.unit_index == 1:
                parent_id = unit_id
            if parent_id is not None:
                parent_updates.append((parent_id, unit_id))
        for parent, child in parent_updates:
            self.cursor.execute("UPDATE order_items SET parent_item_id = %s WHERE id = %s", (parent, child))
        return result.inserted_rows

    def _insert_special_orders(self, invoice_id: int, invoice: Invoice) -> None:
        batch_insert(
            self.cursor,
            "special_order_items",
            SPECIAL_ORDER_COLUMNS,
            (
                [invoice_id, s.name, str(s.quantity), s.glass_option, s.type.value, "pending"]
                for s in invoice.special_order_items
            ),
        )

    def set_batch_assigned(self, unit_ids: list[int], batch: str) -> QueryResult:
        try:
            self.cursor.execute("BEGIN")
            self.cursor.execute(
                "UPDATE order_items SET batch_assigned = %s WHERE id = ANY(%s)", (batch, list(unit_ids))
            )
            updated = self.cursor.rowcount
            self.cursor.execute("COMMIT")
        except Exception as e:
            self._rollback()
            return QueryResult.failed(str(e))
        return QueryResult.ok([{"updated": updated}])
