from __future__ import annotations

from invoice_console.models.invoice import CategorizedItem, RawItem
from invoice_console.models.unit_record import BatchStatus, UnitRecord
from invoice_console.services.units import batch_status, collapse, expand, is_unit_assigned, unit_count


def test_unit_count():
    assert unit_count("3") == 3
    assert unit_count("") == 1
    assert unit_count("0") == 1
    assert unit_count(-2) == 1
    assert unit_count(2.0) == 2


def test_expand_assigns_indexes_and_resets_batch():
    item = CategorizedItem(name="Slider Window", quantity="3", width="36", color="White", requires_special_order=True)
    units = expand([item])
    assert [u.unit_index for u in units] == [1, 2, 3]
    assert {u.original_quantity for u in units} == {3}
    assert {u.quantity for u in units} == {1}
    assert all(u.requires_special_order for u in units)
    assert all(u.parent_item_id is None for u in units)
    assert all(u.batch_assigned == "" for u in units)
    assert units[0].width == "36"


def test_expand_raw_item_not_special():
    units = expand([RawItem(name="A", quantity="x")])
    assert len(units) == 1
    assert units[0].requires_special_order is False


def test_expand_collapse_round_trip():
    items = [
        RawItem(name="A", quantity="2", width="10", height="20"),
        RawItem(name="B", quantity="1", color="White"),
        RawItem(name="A", quantity="3", width="11", height="20"),
    ]
    collapsed = collapse(expand(items))
    assert len(collapsed) == 3
    assert [c.quantity for c in collapsed] == [2, 1, 3]
    assert [(c.name, c.width) for c in collapsed] == [("A", "10"), ("B", ""), ("A", "11")]
    for group in collapsed:
        assert batch_status(list(group.units)).all_assigned is False
        assert group.batch_status.assigned_count == 0


def test_collapse_merges_identical_lines():
    items = [RawItem(name="A", quantity="2"), RawItem(name="A", quantity="1")]
    collapsed = collapse(expand(items))
    assert len(collapsed) == 1
    assert collapsed[0].quantity == 3


def test_collapse_keeps_per_unit_assignments():
    units = [
        UnitRecord(name="A", batch_assigned="B-1", unit_index=1),
        UnitRecord(name="A", batch_assigned="B-1", unit_index=2),
        UnitRecord(name="A", batch_assigned=None, unit_index=3),
    ]
    (group,) = collapse(units)
    assert group.batch_assignments == ("B-1", "B-1", None)
    assert group.batch_status.assigned_count == 2
    assert group.batch_status.all_assigned is False


def test_is_unit_assigned():
    assert is_unit_assigned("B-7")
    assert not is_unit_assigned(None)
    assert not is_unit_assigned("")
    assert not is_unit_assigned("  ")
    assert not is_unit_assigned("N/A")


def test_batch_status():
    assert batch_status([]).all_assigned is False
    assert batch_status([]).total_count == 0
    done = [UnitRecord(name="A", batch_assigned="B-1"), UnitRecord(name="A", batch_assigned="B-2")]
    status = batch_status(done)
    assert status.all_assigned is True
    assert (status.assigned_count, status.total_count) == (2, 2)
    partial = batch_status([*done, UnitRecord(name="A", batch_assigned="N/A")])
    assert partial.all_assigned is False
    assert partial.assigned_count == 2


def test_batch_status_model_matches_service():
    units = [UnitRecord(name="A", batch_assigned="  "), UnitRecord(name="A", batch_assigned="B-2")]
    assert BatchStatus.of(units) == batch_status(units)
    assert BatchStatus.of(units).assigned_count == 1
    assert BatchStatus.of([]).all_assigned is False
