from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Reference catalog models (items, colors, frame styles, glass, delivery).

Catalogs are owned by the back-office CRUD screens and read here as an
immutable snapshot. One categorization pass always sees exactly one snapshot.
"""

__all__ = [
    "ItemType",
    "TALLY_ORDER",
    "ItemEntry",
    "ColorEntry",
    "FrameStyleEntry",
    "GlassOptionEntry",
    "DeliveryMethodEntry",
    "CatalogSnapshot",
]


class ItemType(Enum):
    """Closed vocabulary of catalog item types.

    OTHER is the explicit "do not tally" sentinel. Values are the literal
    strings stored in the items table.
    """
    WINDOW = "Window"
    DOOR = "Door"
    GLASS = "Glass"
    SCREEN = "Screen"
    PART = "Part"
    OTHER = "Other"


# WDGSP 文字列の並び順 (Window/Door/Glass/Screen/Part)
TALLY_ORDER: tuple[ItemType, ...] = (
    ItemType.WINDOW,
    ItemType.DOOR,
    ItemType.GLASS,
    ItemType.SCREEN,
    ItemType.PART,
)


@dataclass(frozen=True)
class ItemEntry:
    name: str
    item_type: str  # 自由文字列のまま保持 (語彙外の値もあり得る)
    order_needed: bool = False
    id: int | None = None


@dataclass(frozen=True)
class ColorEntry:
    color_name: str
    id: int | None = None


@dataclass(frozen=True)
class FrameStyleEntry:
    style_name: str
    id: int | None = None


@dataclass(frozen=True)
class GlassOptionEntry:
    """Glass option; matched by substring containment, not equality."""
    glass_type: str
    order_needed: bool = False
    id: int | None = None


@dataclass(frozen=True)
class DeliveryMethodEntry:
    name: str
    id: int | None = None


@dataclass(frozen=True)
class CatalogSnapshot:
    """Read-only view of all reference catalogs for one categorization pass."""
    items: tuple[ItemEntry, ...] = ()
    colors: tuple[ColorEntry, ...] = ()
    frame_styles: tuple[FrameStyleEntry, ...] = ()
    glass_options: tuple[GlassOptionEntry, ...] = ()
    delivery_methods: tuple[DeliveryMethodEntry, ...] = ()

    @staticmethod
    def empty() -> CatalogSnapshot:
        """Snapshot used when the catalog fetch failed (everything reads as unknown)."""
        return CatalogSnapshot()

    @property
    def is_empty(self) -> bool:
        return not (
            self.items
            or self.colors
            or self.frame_styles
            or self.glass_options
            or self.delivery_methods
        )
