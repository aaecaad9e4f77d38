"""Domain models for the invoice reconciliation console.

Catalog snapshots, in-flight invoices, per-unit records and the result types
returned by the services and the storage adapter.
"""

from .catalog import (
    TALLY_ORDER,
    CatalogSnapshot,
    ColorEntry,
    DeliveryMethodEntry,
    FrameStyleEntry,
    GlassOptionEntry,
    ItemEntry,
    ItemType,
)
from .import_issue import ImportIssue, IssueKind, Severity
from .invoice import (
    CategorizationResult,
    CategorizedItem,
    CustomerInfo,
    Invoice,
    RawItem,
    SpecialOrderItem,
    SpecialOrderType,
)
from .processing_result import BatchImportResult, ImportStatus, InvoiceOutcome, QueryResult
from .unit_record import BatchStatus, CollapsedItem, UnitRecord

__all__ = [
    # Catalogs
    "CatalogSnapshot",
    "ColorEntry",
    "DeliveryMethodEntry",
    "FrameStyleEntry",
    "GlassOptionEntry",
    "ItemEntry",
    "ItemType",
    "TALLY_ORDER",
    # Invoices
    "CategorizationResult",
    "CategorizedItem",
    "CustomerInfo",
    "Invoice",
    "RawItem",
    "SpecialOrderItem",
    "SpecialOrderType",
    # Units
    "BatchStatus",
    "CollapsedItem",
    "UnitRecord",
    # Results
    "BatchImportResult",
    "ImportIssue",
    "ImportStatus",
    "InvoiceOutcome",
    "IssueKind",
    "QueryResult",
    "Severity",
]
