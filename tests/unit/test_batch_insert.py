from __future__ import annotations

import pytest

from invoice_console.db.batch_insert import BatchInsertError, InsertResult, batch_insert


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.rows: list[list] = []
        self.fetched: list[tuple] = [(11,), (12,)]


# We monkeypatch execute_values symbol inside module to avoid needing a
# real database for logic tests

@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import invoice_console.db.batch_insert as bi

    def fake_execute_values(cursor, sql, rows, page_size=1000, fetch=False):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)
        return cursor.fetched if fetch else None

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_basic():
    cur = DummyCursor()
    res = batch_insert(cur, table="order_items", columns=["item_name", "quantity"], rows=[["A", 1], ["B", 1]])
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 2
    assert res.returned_values is None
    assert cur.queries == ['INSERT INTO order_items ("item_name","quantity") VALUES %s']


def test_batch_insert_returning():
    cur = DummyCursor()
    res = batch_insert(cur, table="order_items", columns=["item_name"], rows=[["A"], ["B"]], returning="id")
    assert res.returned_values == [(11,), (12,)]
    assert cur.queries[0].endswith('RETURNING "id"')


def test_batch_insert_accepts_generator():
    cur = DummyCursor()
    res = batch_insert(cur, table="t", columns=["c"], rows=([i] for i in range(3)))
    assert res.inserted_rows == 3
    assert cur.rows == [[0], [1], [2]]


def test_batch_insert_empty_rows():
    cur = DummyCursor()
    res = batch_insert(cur, table="order_items", columns=["id"], rows=[], returning="id")
    assert res.inserted_rows == 0
    assert res.returned_values == []
    assert cur.queries == []


def test_batch_insert_driver_error_wrapped(monkeypatch):
    import invoice_console.db.batch_insert as bi

    def failing(*args, **kwargs):
        raise ValueError("bad row")

    monkeypatch.setattr(bi, "execute_values", failing)
    with pytest.raises(BatchInsertError, match="bad row"):
        batch_insert(DummyCursor(), table="t", columns=["c"], rows=[[1]])

