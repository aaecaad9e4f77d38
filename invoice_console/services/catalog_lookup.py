from __future__ import annotations

import math
import re
from collections.abc import Iterable

from ..models.catalog import (
    CatalogSnapshot,
    ColorEntry,
    DeliveryMethodEntry,
    FrameStyleEntry,
    GlassOptionEntry,
    ItemEntry,
)

"""Catalog lookup helpers shared by the categorizer and the reconciliation step.

Matching is case-insensitive exact equality on the canonical name field,
except glass which matches when the catalog glass_type is contained in the
free-text glass option. No fuzzy matching anywhere.
"""

__all__ = [
    "is_blank",
    "parse_int_prefix",
    "quantity_or",
    "find_item",
    "find_color",
    "find_frame_style",
    "find_delivery_method",
    "find_special_order_glass",
]

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def is_blank(value: object) -> bool:
    return value is None or str(value).strip() == ""


def parse_int_prefix(value: object) -> int | None:
    """Parse the leading integer of a cell value ("3", "3.0", " 2 pcs" -> 2).

    Returns None when no leading digits exist. Booleans are not quantities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):  # NaN, inf
            return None
        return int(value)
    m = _INT_PREFIX.match(str(value))
    if not m:
        return None
    return int(m.group(1))


def quantity_or(value: object, default: int) -> int:
    """Parsed quantity, or ``default`` when unparseable or zero."""
    parsed = parse_int_prefix(value)
    return parsed or default


def _norm(value: object) -> str:
    return str(value or "").lower()


def _find_by(entries: Iterable, attr: str, value: str):
    key = _norm(value)
    for entry in entries:
        name = getattr(entry, attr, None)
        if name and name.lower() == key:
            return entry
    return None


def find_item(catalogs: CatalogSnapshot, name: str) -> ItemEntry | None:
    if not name:
        return None
    return _find_by(catalogs.items, "name", name)


def find_color(catalogs: CatalogSnapshot, color: str) -> ColorEntry | None:
    return _find_by(catalogs.colors, "color_name", color)


def find_frame_style(catalogs: CatalogSnapshot, frame: str) -> FrameStyleEntry | None:
    return _find_by(catalogs.frame_styles, "style_name", frame)


def find_delivery_method(catalogs: CatalogSnapshot, method: str) -> DeliveryMethodEntry | None:
    return _find_by(catalogs.delivery_methods, "name", method)


def find_special_order_glass(catalogs: CatalogSnapshot, glass_option: str) -> GlassOptionEntry | None:
    """First order-needed glass option whose glass_type appears in ``glass_option``."""
    text = _norm(glass_option)
    for entry in catalogs.glass_options:
        if not entry.order_needed or not entry.glass_type:
            continue
        if entry.glass_type.lower() in text:
            return entry
    return None
