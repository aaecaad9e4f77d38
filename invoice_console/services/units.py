from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..models.invoice import CategorizedItem, RawItem
from ..models.unit_record import UNASSIGNED_MARKER, BatchStatus, CollapsedItem, UnitRecord, is_assigned_value
from .catalog_lookup import parse_int_prefix

"""Unit expansion / collapse and batch-assignment status.

expand: one line item of quantity N -> N UnitRecords (quantity 1, unit_index
1..N). collapse: units sharing every non-unit attribute -> one CollapsedItem
whose quantity is the unit count. Freshly expanded units are unassigned and
have no parent_item_id; the storage adapter backfills it after insert.
"""

__all__ = [
    "UNASSIGNED_MARKER",
    "unit_count",
    "expand",
    "collapse",
    "is_unit_assigned",
    "batch_status",
]


def unit_count(quantity: object) -> int:
    """Number of physical units for a quantity cell (unparseable or <=1 -> 1)."""
    parsed = parse_int_prefix(quantity)
    if parsed is None or parsed < 1:
        return 1
    return parsed


def expand(items: Iterable[RawItem]) -> list[UnitRecord]:
    units: list[UnitRecord] = []
    for item in items:
        n = unit_count(item.quantity)
        flag = item.requires_special_order if isinstance(item, CategorizedItem) else False
        base = item.raw_fields()
        base["quantity"] = 1
        for idx in range(1, n + 1):
            units.append(
                UnitRecord(
                    **base,
                    requires_special_order=flag,
                    unit_index=idx,
                    original_quantity=n,
                    parent_item_id=None,
                    batch_assigned="",
                )
            )
    return units


def collapse(units: Iterable[UnitRecord]) -> list[CollapsedItem]:
    """Group units by attribute tuple, preserving first-seen order."""
    groups: dict[tuple[str, ...], list[UnitRecord]] = {}
    for unit in units:
        groups.setdefault(unit.group_key(), []).append(unit)

    collapsed: list[CollapsedItem] = []
    for members in groups.values():
        first = members[0]
        collapsed.append(
            CollapsedItem(
                name=first.name,
                width=first.width,
                height=first.height,
                additional_dimension=first.additional_dimension,
                color=first.color,
                frame=first.frame,
                glass_option=first.glass_option,
                grid_style=first.grid_style,
                argon=first.argon,
                quantity=len(members),
                requires_special_order=any(u.requires_special_order for u in members),
                units=tuple(members),
                batch_assignments=tuple(u.batch_assigned for u in members),
            )
        )
    return collapsed


def is_unit_assigned(batch_assigned: str | None) -> bool:
    """Assigned iff non-null, not "N/A" and not blank."""
    return is_assigned_value(batch_assigned)


def batch_status(units: Sequence[UnitRecord]) -> BatchStatus:
    """Batch-assignment status of a set of units.

    An empty set is *not* all-assigned (an invoice without units never counts
    as fully batched).
    """
    return BatchStatus.of(units)
