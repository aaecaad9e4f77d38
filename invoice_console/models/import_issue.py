from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Import blocker model.

Every condition that keeps an invoice out of storage is reported as an
ImportIssue carrying enough detail (which items, colors, frames, methods) for
a person to fix either the source workbook or the catalog.
"""

__all__ = [
    "Severity",
    "IssueKind",
    "ImportIssue",
]


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


class IssueKind(Enum):
    UNKNOWN_ITEMS = "unknown_items"
    UNKNOWN_COLORS = "unknown_colors"
    UNKNOWN_FRAME_STYLES = "unknown_frame_styles"
    UNKNOWN_DELIVERY_METHOD = "unknown_delivery_method"
    MISSING_SHIPPING_ADDRESS = "missing_shipping_address"
    DUPLICATE_ORDER = "duplicate_order"


@dataclass(frozen=True)
class ImportIssue:
    kind: IssueKind
    severity: Severity
    details: tuple[str, ...] = ()

    def describe(self) -> str:
        label = self.kind.value.replace("_", " ")
        if self.details:
            return f"{label}: {', '.join(self.details)}"
        return label
