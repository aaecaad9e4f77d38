from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed adapter call or failed invoice write. ``order_no`` is
the invoice the failure belongs to; batch-level failures (catalog fetch,
duplicate lookup) use the ``<BATCH>`` placeholder.
"""

__all__ = [
    "ErrorRecord",
    "BATCH_LEVEL",
]

BATCH_LEVEL = "<BATCH>"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source workbook name ("" when not file-bound)
        order_no: Invoice order number, or BATCH_LEVEL
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Storage error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    order_no: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, order_no: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            order_no=order_no,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
