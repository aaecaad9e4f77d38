from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from invoice_console.logging.error_log import ErrorLogBuffer
from invoice_console.models.error_record import BATCH_LEVEL, ErrorRecord

"""Error log JSON Lines contract: one object per line, fixed keys, no extras."""

ERROR_LOG_SCHEMA = {
    "type": "object",
    "required": ["timestamp", "file", "order_no", "error_type", "message"],
    "additionalProperties": False,
    "properties": {
        "timestamp": {"type": "string", "pattern": r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$"},
        "file": {"type": "string"},
        "order_no": {"type": "string", "minLength": 1},
        "error_type": {"type": "string", "pattern": r"^[A-Z][A-Z0-9_]*$"},
        "message": {"type": "string"},
    },
}


def test_error_log_schema_valid_example():
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "file": "march.xlsx",
        "order_no": "1001",
        "error_type": "INVOICE_SAVE_ERROR",
        "message": "duplicate key value violates unique constraint 'invoices_order_no_key'",
    }
    jsonschema.validate(record, ERROR_LOG_SCHEMA)


def test_error_log_schema_rejects_extra_key():
    record = {
        "timestamp": "2025-09-26T10:12:33Z",
        "file": "march.xlsx",
        "order_no": "1001",
        "error_type": "INVOICE_SAVE_ERROR",
        "message": "x",
        "extra": "not allowed",
    }
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(record, ERROR_LOG_SCHEMA)


@pytest.mark.parametrize(
    "record",
    [
        ErrorRecord.create("march.xlsx", "1001", "INVOICE_SAVE_ERROR", "constraint violation"),
        ErrorRecord.create("", BATCH_LEVEL, "DUPLICATE_CHECK_ERROR", "timeout"),
        ErrorRecord.create("broken.xlsx", BATCH_LEVEL, "WORKBOOK_READ_ERROR", "Failed to parse Excel file"),
    ],
)
def test_written_lines_match_schema(tmp_path: Path, record: ErrorRecord):
    buf = ErrorLogBuffer(tmp_path)
    buf.append(record)
    path = buf.flush()
    for line in path.read_text(encoding="utf-8").splitlines():
        jsonschema.validate(json.loads(line), ERROR_LOG_SCHEMA)
