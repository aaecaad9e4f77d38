from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .invoice import CategorizedItem

"""Per-physical-unit records used for batch assignment.

A line item with quantity N is stored as N UnitRecords (quantity 1 each).
Batch assignment happens per unit, so the order_items table holds units,
and screens collapse them back into line items for display.
"""

__all__ = [
    "UnitRecord",
    "CollapsedItem",
    "BatchStatus",
    "UNIT_KEY_FIELDS",
    "UNASSIGNED_MARKER",
    "is_assigned_value",
]

# 未割当を表す batch_assigned の値 (NULL と空白のみも未割当)
UNASSIGNED_MARKER = "N/A"


def is_assigned_value(batch_assigned: str | None) -> bool:
    """Assigned iff non-null, not "N/A" and not blank."""
    if batch_assigned is None or batch_assigned == UNASSIGNED_MARKER:
        return False
    return batch_assigned.strip() != ""


# collapse 時のグループキー (unit 固有の列は含めない)
UNIT_KEY_FIELDS: tuple[str, ...] = (
    "name",
    "width",
    "height",
    "additional_dimension",
    "color",
    "frame",
    "glass_option",
    "grid_style",
    "argon",
)


@dataclass(frozen=True)
class UnitRecord(CategorizedItem):
    """One physical unit of a line item."""
    unit_index: int = 1
    original_quantity: int = 1
    parent_item_id: int | None = None  # 永続化後に先頭ユニットの id で埋める
    batch_assigned: str | None = ""
    id: int | None = None

    def group_key(self) -> tuple[str, ...]:
        return tuple(str(getattr(self, f) or "") for f in UNIT_KEY_FIELDS)


@dataclass(frozen=True)
class BatchStatus:
    all_assigned: bool
    assigned_count: int
    total_count: int

    @classmethod
    def of(cls, units: Sequence[UnitRecord]) -> BatchStatus:
        """Status of a set of units; an empty set is never all-assigned."""
        assigned = sum(1 for u in units if is_assigned_value(u.batch_assigned))
        return cls(
            all_assigned=bool(units) and assigned == len(units),
            assigned_count=assigned,
            total_count=len(units),
        )


@dataclass(frozen=True)
class CollapsedItem:
    """Line item reconstructed from a group of units sharing all attributes."""
    name: str
    width: str
    height: str
    additional_dimension: str
    color: str
    frame: str
    glass_option: str
    grid_style: str
    argon: str
    quantity: int
    requires_special_order: bool
    units: tuple[UnitRecord, ...]
    batch_assignments: tuple[str | None, ...]  # ユニット毎 (重複除去しない)

    @property
    def batch_status(self) -> BatchStatus:
        return BatchStatus.of(self.units)
