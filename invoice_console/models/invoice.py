from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

"""Invoice and line item models.

RawItem is the single internal spelling of a spreadsheet line. The
extractor and the persistence adapter translate to/from their own field
names (item_name, glass_option column names etc.) at the boundary.
"""

__all__ = [
    "RawItem",
    "CategorizedItem",
    "SpecialOrderType",
    "SpecialOrderItem",
    "CustomerInfo",
    "Invoice",
    "CategorizationResult",
    "EMPTY_WDGSP",
]

EMPTY_WDGSP = "0/0/0/0/0"


@dataclass(frozen=True)
class RawItem:
    """One spreadsheet line before reconciliation."""
    name: str = ""
    quantity: str | int = ""  # 生の値 (数値 or 文字列)。解釈は services 側
    width: str = ""
    height: str = ""
    additional_dimension: str = ""  # "P/V" / FH
    color: str = ""
    argon: str = ""  # "yes" or ""
    glass_option: str = ""  # free text
    grid_style: str = ""
    frame: str = ""

    def raw_fields(self) -> dict[str, Any]:
        """Return only the RawItem attributes (drops derived flags of subclasses)."""
        return {f.name: getattr(self, f.name) for f in fields(RawItem)}


@dataclass(frozen=True)
class CategorizedItem(RawItem):
    requires_special_order: bool = False

    @staticmethod
    def from_raw(item: RawItem, requires_special_order: bool) -> CategorizedItem:
        return CategorizedItem(**item.raw_fields(), requires_special_order=requires_special_order)


class SpecialOrderType(Enum):
    ITEM = "item"
    GLASS = "glass"


@dataclass(frozen=True)
class SpecialOrderItem:
    name: str
    quantity: str | int
    type: SpecialOrderType
    glass_option: str | None = None  # GLASS の場合のみ


@dataclass(frozen=True)
class CustomerInfo:
    name: str = ""
    phone: str = ""
    address: str = ""


@dataclass(frozen=True)
class CategorizationResult:
    """Output of one full categorization pass over an invoice's items."""
    processed_items: tuple[CategorizedItem, ...]
    wdgsp_string: str
    unknown_items: tuple[str, ...]
    unknown_colors: tuple[str, ...]
    unknown_frame_styles: tuple[str, ...]
    unknown_delivery_methods: tuple[str, ...]
    glass_order_needed: bool
    item_order_needed: bool
    has_special_order: bool
    special_order_items: tuple[SpecialOrderItem, ...]


@dataclass(frozen=True)
class Invoice:
    """In-flight invoice between extraction and persistence.

    Derived fields always hold a concrete value so reporting and export code
    can use plain truthiness checks. They are recomputed wholesale by
    services.reconciliation.reconcile_invoice, never patched.
    """
    order_no: str
    po_number: str = ""
    customer_info: CustomerInfo = CustomerInfo()
    order_date: str = ""
    due_date: str = ""
    delivery_date: str = ""
    delivery_method: str = ""
    paid_status: str = ""
    shipping_address: str = ""
    items: tuple[RawItem, ...] = ()
    # --- derived ---
    wdgsp_string: str = EMPTY_WDGSP
    unknown_items: tuple[str, ...] = ()
    unknown_colors: tuple[str, ...] = ()
    unknown_frame_styles: tuple[str, ...] = ()
    unknown_delivery_methods: tuple[str, ...] = ()
    glass_order_needed: bool = False
    item_order_needed: bool = False
    has_special_order: bool = False
    special_order_items: tuple[SpecialOrderItem, ...] = ()
    total_quantity: int = 0
    missing_shipping_address: bool = False
    is_duplicate: bool = False
    source_file: str = ""  # ログ用 (永続化キーではない)
