from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace

from ..models.catalog import CatalogSnapshot
from ..models.import_issue import ImportIssue, IssueKind, Severity
from ..models.invoice import Invoice, RawItem
from ..models.processing_result import QueryResult
from .catalog_lookup import is_blank, quantity_or
from .categorizer import categorize

"""Duplicate & quantity reconciliation for a parsed batch of invoices.

Import eligibility: an invoice is blocked while it has unknown items,
colors, frame styles or delivery method, a delivery order without shipping
address, or an order number that already exists in storage. Duplicate is the
only ERROR-severity blocker; the rest are warnings.
"""

__all__ = [
    "DELIVERY_KEYWORD",
    "DuplicateLookup",
    "DuplicateCheck",
    "BatchReconciliation",
    "check_duplicates",
    "flag_duplicates",
    "total_quantity",
    "is_missing_shipping_address",
    "reconcile_invoice",
    "reconcile_batch",
    "import_blockers",
    "is_importable",
    "importable",
]

logger = logging.getLogger(__name__)

DELIVERY_KEYWORD = "delivery"

# 永続化済み order_no の照会 (adapter 側実装)
DuplicateLookup = Callable[[list[str]], QueryResult]


@dataclass(frozen=True)
class DuplicateCheck:
    existing: frozenset[str]
    error: str | None = None  # 照会失敗時のみ (fail open)


@dataclass(frozen=True)
class BatchReconciliation:
    invoices: list[Invoice]
    duplicate_check: DuplicateCheck


def check_duplicates(order_numbers: Sequence[str], lookup: DuplicateLookup | None) -> DuplicateCheck:
    """Return the subset of ``order_numbers`` already persisted.

    A failed lookup (``success=False`` or a raised exception) is treated as
    "nothing is a duplicate" and the failure is returned in ``error`` so the
    caller can report it next to the results.
    """
    candidates = [o for o in dict.fromkeys(order_numbers) if o]
    if lookup is None or not candidates:
        return DuplicateCheck(existing=frozenset())
    try:
        result = lookup(candidates)
    except Exception as e:
        logger.warning(f"duplicate check failed: {e}")
        return DuplicateCheck(existing=frozenset(), error=str(e))
    if not result.success:
        logger.warning(f"duplicate check failed: {result.error}")
        return DuplicateCheck(existing=frozenset(), error=result.error or "duplicate check failed")
    existing = {str(row["order_no"]) for row in result.data if row.get("order_no") is not None}
    return DuplicateCheck(existing=frozenset(existing))


def flag_duplicates(invoices: Iterable[Invoice], existing: frozenset[str] | set[str]) -> list[Invoice]:
    return [replace(inv, is_duplicate=inv.order_no in existing) for inv in invoices]


def total_quantity(items: Iterable[RawItem]) -> int:
    """Sum of item quantities; unparseable quantities count as 0 here."""
    return sum(quantity_or(item.quantity, 0) for item in items)


def is_missing_shipping_address(delivery_method: str | None, shipping_address: str | None) -> bool:
    method = (delivery_method or "").lower()
    return method == DELIVERY_KEYWORD and is_blank(shipping_address)


def reconcile_invoice(invoice: Invoice, catalogs: CatalogSnapshot) -> Invoice:
    """Full recompute of every derived field except ``is_duplicate``."""
    result = categorize(invoice.items, invoice.delivery_method, catalogs)
    return replace(
        invoice,
        items=result.processed_items,
        wdgsp_string=result.wdgsp_string,
        unknown_items=result.unknown_items,
        unknown_colors=result.unknown_colors,
        unknown_frame_styles=result.unknown_frame_styles,
        unknown_delivery_methods=result.unknown_delivery_methods,
        glass_order_needed=result.glass_order_needed,
        item_order_needed=result.item_order_needed,
        has_special_order=result.has_special_order,
        special_order_items=result.special_order_items,
        total_quantity=total_quantity(result.processed_items),
        missing_shipping_address=is_missing_shipping_address(
            invoice.delivery_method, invoice.shipping_address
        ),
    )


def reconcile_batch(
    invoices: Sequence[Invoice],
    catalogs: CatalogSnapshot,
    lookup: DuplicateLookup | None,
) -> BatchReconciliation:
    reconciled = [reconcile_invoice(inv, catalogs) for inv in invoices]
    dup = check_duplicates([inv.order_no for inv in reconciled], lookup)
    flagged = flag_duplicates(reconciled, dup.existing)
    if dup.existing:
        logger.info(f"duplicate orders in batch: {sorted(dup.existing)}")
    return BatchReconciliation(invoices=flagged, duplicate_check=dup)


def import_blockers(invoice: Invoice) -> list[ImportIssue]:
    issues: list[ImportIssue] = []
    if invoice.is_duplicate:
        issues.append(ImportIssue(IssueKind.DUPLICATE_ORDER, Severity.ERROR, (invoice.order_no,)))
    if invoice.unknown_items:
        issues.append(ImportIssue(IssueKind.UNKNOWN_ITEMS, Severity.WARNING, tuple(invoice.unknown_items)))
    if invoice.unknown_colors:
        issues.append(ImportIssue(IssueKind.UNKNOWN_COLORS, Severity.WARNING, tuple(invoice.unknown_colors)))
    if invoice.unknown_frame_styles:
        issues.append(
            ImportIssue(IssueKind.UNKNOWN_FRAME_STYLES, Severity.WARNING, tuple(invoice.unknown_frame_styles))
        )
    if invoice.unknown_delivery_methods:
        issues.append(
            ImportIssue(
                IssueKind.UNKNOWN_DELIVERY_METHOD, Severity.WARNING, tuple(invoice.unknown_delivery_methods)
            )
        )
    if invoice.missing_shipping_address:
        issues.append(ImportIssue(IssueKind.MISSING_SHIPPING_ADDRESS, Severity.WARNING))
    return issues


def is_importable(invoice: Invoice) -> bool:
    return not import_blockers(invoice)


def importable(invoices: Iterable[Invoice]) -> list[Invoice]:
    return [inv for inv in invoices if is_importable(inv)]
