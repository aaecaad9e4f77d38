from __future__ import annotations

from dataclasses import fields, replace
from typing import Any

from ..models.catalog import CatalogSnapshot
from ..models.invoice import Invoice, RawItem
from .reconciliation import reconcile_invoice

"""Item edits on an in-flight invoice.

Every edit returns a new, fully re-reconciled Invoice (tallies and flags
span all items). ``is_duplicate`` is carried over untouched.
"""

__all__ = [
    "EditError",
    "update_invoice",
    "add_item",
    "remove_item",
    "update_item",
]

_EDITABLE = {f.name for f in fields(RawItem)}


class EditError(Exception):
    pass


def update_invoice(invoice: Invoice, catalogs: CatalogSnapshot, **changes: Any) -> Invoice:
    """Change header fields (delivery method, shipping address, ...) and re-reconcile."""
    derived = {"items", "is_duplicate", "order_no"}
    bad = sorted(set(changes) & derived)
    if bad:
        raise EditError(f"fields cannot be edited here: {bad}")
    return reconcile_invoice(replace(invoice, **changes), catalogs)


def add_item(invoice: Invoice, catalogs: CatalogSnapshot, item: RawItem | None = None) -> Invoice:
    new_item = item if item is not None else RawItem(quantity=1)
    return reconcile_invoice(replace(invoice, items=(*invoice.items, new_item)), catalogs)


def remove_item(invoice: Invoice, catalogs: CatalogSnapshot, index: int) -> Invoice:
    if not 0 <= index < len(invoice.items):
        raise EditError(f"item index out of range: {index}")
    items = invoice.items[:index] + invoice.items[index + 1:]
    return reconcile_invoice(replace(invoice, items=items), catalogs)


def update_item(invoice: Invoice, catalogs: CatalogSnapshot, index: int, field: str, value: Any) -> Invoice:
    if field not in _EDITABLE:
        raise EditError(f"not an editable item field: {field}")
    if not 0 <= index < len(invoice.items):
        raise EditError(f"item index out of range: {index}")
    items = list(invoice.items)
    items[index] = replace(items[index], **{field: value})
    return reconcile_invoice(replace(invoice, items=tuple(items)), catalogs)
