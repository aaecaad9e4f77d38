from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.catalog import TALLY_ORDER, CatalogSnapshot, ItemType
from ..models.invoice import (
    CategorizationResult,
    CategorizedItem,
    RawItem,
    SpecialOrderItem,
    SpecialOrderType,
)
from .catalog_lookup import (
    find_color,
    find_delivery_method,
    find_frame_style,
    find_item,
    find_special_order_glass,
    is_blank,
    quantity_or,
)

"""Categorization engine.

Cross-references every item of one invoice against the reference catalogs
and computes the invoice-level aggregates (WDGSP tally, special-order flags,
unknown reference lists).

The function is pure over its inputs. Tallies span all items, so callers
must re-run it over the whole item list after any edit or catalog refresh;
there is no per-item update path.
"""

__all__ = [
    "EMPTY_DELIVERY_SENTINEL",
    "categorize",
    "format_wdgsp",
]

logger = logging.getLogger(__name__)

EMPTY_DELIVERY_SENTINEL = "Empty/Missing"

_TALLY_KEYS = {t.value for t in TALLY_ORDER}


def format_wdgsp(tally: dict[str, int]) -> str:
    """Render ``Window/Door/Glass/Screen/Part`` counts, absent keys as 0."""
    return "/".join(str(tally.get(t.value, 0)) for t in TALLY_ORDER)


def _check_delivery_method(delivery_method: str | None, catalogs: CatalogSnapshot) -> list[str]:
    if is_blank(delivery_method):
        return [EMPTY_DELIVERY_SENTINEL]
    if find_delivery_method(catalogs, delivery_method) is None:  # type: ignore[arg-type]
        return [str(delivery_method)]
    return []


def categorize(
    items: Sequence[RawItem],
    delivery_method: str | None,
    catalogs: CatalogSnapshot,
) -> CategorizationResult:
    """Categorize one invoice's items against a catalog snapshot.

    Per item:
      - item name: tally by catalog item_type (quantity defaults to 1),
        special order when the catalog entry has order_needed; unmatched
        non-empty names are appended to unknown_items (no de-duplication)
      - color / frame: unmatched non-blank values collected once each
      - glass option: special order when any order-needed glass_type is a
        substring of the option text (independent of the item match, so one
        item may appear twice in special_order_items)

    Args:
        items: RawItem or already-categorized items (flags are recomputed)
        delivery_method: Free-text delivery method of the invoice
        catalogs: Catalog snapshot for this pass

    Returns:
        New CategorizationResult; inputs are not modified
    """
    unknown_delivery = _check_delivery_method(delivery_method, catalogs)

    tally: dict[str, int] = {}
    unknown_items: list[str] = []
    unknown_colors: list[str] = []
    unknown_frames: list[str] = []
    special_orders: list[SpecialOrderItem] = []
    item_order_needed = False
    glass_order_needed = False
    processed: list[CategorizedItem] = []

    for item in items:
        requires_special_order = False

        entry = find_item(catalogs, item.name)
        if entry is not None:
            if entry.item_type != ItemType.OTHER.value and entry.item_type in _TALLY_KEYS:
                tally[entry.item_type] = tally.get(entry.item_type, 0) + quantity_or(item.quantity, 1)
            elif entry.item_type != ItemType.OTHER.value:
                # 語彙外の item_type は集計も unknown 扱いもしない
                logger.debug(f"item '{item.name}' has untallied item_type '{entry.item_type}'")
            if entry.order_needed:
                requires_special_order = True
                item_order_needed = True
                special_orders.append(
                    SpecialOrderItem(name=item.name, quantity=item.quantity, type=SpecialOrderType.ITEM)
                )
        elif item.name:
            unknown_items.append(item.name)

        if not is_blank(item.color) and find_color(catalogs, item.color) is None:
            if item.color not in unknown_colors:
                unknown_colors.append(item.color)

        if not is_blank(item.frame) and find_frame_style(catalogs, item.frame) is None:
            if item.frame not in unknown_frames:
                unknown_frames.append(item.frame)

        if not is_blank(item.glass_option) and find_special_order_glass(catalogs, item.glass_option):
            requires_special_order = True
            glass_order_needed = True
            special_orders.append(
                SpecialOrderItem(
                    name=item.name,
                    quantity=item.quantity,
                    type=SpecialOrderType.GLASS,
                    glass_option=item.glass_option,
                )
            )

        processed.append(CategorizedItem.from_raw(item, requires_special_order))

    return CategorizationResult(
        processed_items=tuple(processed),
        wdgsp_string=format_wdgsp(tally),
        unknown_items=tuple(unknown_items),
        unknown_colors=tuple(unknown_colors),
        unknown_frame_styles=tuple(unknown_frames),
        unknown_delivery_methods=tuple(unknown_delivery),
        glass_order_needed=glass_order_needed,
        item_order_needed=item_order_needed,
        has_special_order=glass_order_needed or item_order_needed,
        special_order_items=tuple(special_orders),
    )
