from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT helper (psycopg2.extras.execute_values).

Used for order_items (one row per physical unit) and special_order_items.
Table and column names come from code, never from spreadsheet content.
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: str | None = None,
    page_size: int = 1000,
) -> InsertResult:
    """Perform a batched INSERT.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction owned by the caller)
    table: target table
    columns: insert columns
    rows: row sequences in ``columns`` order
    returning: column to return (e.g. "id"); rows come back in insert order
    page_size: execute_values page size
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if returning:
        sql += f' RETURNING "{returning}"'

    try:
        if returning:
            # fetch=True: ページ分割されても全 RETURNING 行を回収する
            returned = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=True)
        else:
            execute_values(cursor, sql, rows_list, page_size=page_size)
            returned = None
    except Exception as e:
        raise BatchInsertError(str(e)) from e

    return InsertResult(
        inserted_rows=len(rows_list),
        returned_values=[tuple(r) for r in returned] if returned is not None else None,
    )
