from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

"""Result models for adapter calls and batch imports.

QueryResult mirrors the adapter contract ``{success, data, error?}``: storage
failures are values, not exceptions, so a failed lookup or write never aborts
the rest of a batch.
"""

__all__ = [
    "QueryResult",
    "ImportStatus",
    "InvoiceOutcome",
    "BatchImportResult",
]


@dataclass(frozen=True)
class QueryResult:
    success: bool
    data: list[Any] = field(default_factory=list)
    error: str | None = None

    @staticmethod
    def ok(data: list[Any] | None = None) -> QueryResult:
        return QueryResult(success=True, data=list(data or []))

    @staticmethod
    def failed(error: str) -> QueryResult:
        return QueryResult(success=False, data=[], error=error)


class ImportStatus(Enum):
    """Per-invoice import outcome.

    - IMPORTED: invoice row and all of its units were written
    - FAILED: write attempted and rejected by storage
    - SKIPPED: blocked before any write (warnings or duplicate)
    """
    IMPORTED = "imported"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class InvoiceOutcome:
    order_no: str
    status: ImportStatus
    reasons: tuple[str, ...] = ()  # SKIPPED/FAILED の理由
    invoice_id: int | None = None  # IMPORTED 時の採番 id
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class BatchImportResult:
    """Aggregated per-invoice outcomes of one import run (never all-or-nothing)."""
    imported: int
    failed: int
    skipped: int
    duplicates: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    outcomes: list[InvoiceOutcome] | None = None

    @property
    def total(self) -> int:
        return self.imported + self.failed + self.skipped

    def failures(self) -> list[InvoiceOutcome]:
        return [o for o in self.outcomes or [] if o.status is ImportStatus.FAILED]
