"""Import progress bar (tqdm, interactive terminals only)."""

from __future__ import annotations

import sys
from collections import Counter
from typing import Any

from tqdm import tqdm

from ..models.processing_result import ImportStatus

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One tick per invoice; the postfix shows imported/failed/skipped so far.

    Without a TTY nothing is drawn, but the counters are still kept.
    """

    def __init__(self, total: int, *, description: str = "Importing invoices") -> None:
        self.total = total
        self.description = description
        self.counts: Counter[ImportStatus] = Counter()
        self.pbar: Any = None
        if is_tty_enabled():
            self.pbar = tqdm(total=total, desc=description, unit="invoice", ncols=80, ascii=True)

    @property
    def enabled(self) -> bool:
        return self.pbar is not None

    @property
    def done(self) -> int:
        return sum(self.counts.values())

    def advance(self, order_no: str, status: ImportStatus) -> None:
        self.counts[status] += 1
        if self.pbar is None:
            return
        self.pbar.set_postfix(
            order=order_no,
            imported=self.counts[ImportStatus.IMPORTED],
            failed=self.counts[ImportStatus.FAILED],
            skipped=self.counts[ImportStatus.SKIPPED],
            refresh=False,
        )
        self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
