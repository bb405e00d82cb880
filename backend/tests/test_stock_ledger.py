import pytest
from datetime import date
from sqlmodel import Session

from samplestock.core.errors import NotFound, ValidationError
from samplestock.models import Lifecycle, Shipment
from samplestock.services import shipment_ledger, stock_ledger


def test_intake_sets_both_quantities(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=50, client="ACME", size="M", date_in="2024-08-05")
    assert lot.id is not None
    assert lot.original_qty == 50
    assert lot.current_qty == 50
    assert lot.date_in == date(2024, 8, 5)
    assert lot.lifecycle == Lifecycle.ACTIVE.value


def test_intake_defaults_qty_to_zero(session):
    lot = stock_ledger.intake(session, po="PO-1")
    assert (lot.original_qty, lot.current_qty) == (0, 0)


@pytest.mark.parametrize("bad", [-1, "abc", 2.5, "3.7"])
def test_intake_rejects_bad_quantity(session, bad):
    with pytest.raises(ValidationError) as exc:
        stock_ledger.intake(session, po="PO-1", qty=bad)
    assert exc.value.field == "qty"
    assert stock_ledger.list_lots(session) == []


def test_intake_requires_po(session):
    with pytest.raises(ValidationError) as exc:
        stock_ledger.intake(session, po="  ", qty=3)
    assert exc.value.kind == "validation_error"


def test_intake_accepts_numeric_strings(session):
    lot = stock_ledger.intake(session, po="PO-1", qty="1,200")
    assert lot.current_qty == 1200


def test_edit_preserves_shipped_gap(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=100)
    shipment_ledger.confirm_shipment(session, [{"stock_id": lot.id, "qty": 40}])

    edited = stock_ledger.edit(session, lot.id, original_qty=120)
    assert edited.original_qty == 120
    assert edited.current_qty == 80
    assert edited.shipped_qty == 40


def test_edit_can_leave_current_negative(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    shipment_ledger.confirm_shipment(session, [{"stock_id": lot.id, "qty": 8}])

    edited = stock_ledger.edit(session, lot.id, original_qty=5)
    assert edited.current_qty == -3


def test_edit_descriptive_fields_only(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10, note="old")
    edited = stock_ledger.edit(session, lot.id, note="new", client="ACME", size=None)
    assert edited.note == "new"
    assert edited.client == "ACME"
    assert edited.current_qty == 10


def test_edit_rejects_unknown_field(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    with pytest.raises(ValidationError):
        stock_ledger.edit(session, lot.id, current_qty=99)


def test_edit_missing_lot(session):
    with pytest.raises(NotFound):
        stock_ledger.edit(session, 999, original_qty=1)


def test_edit_trashed_lot(session):
    lot_id = stock_ledger.intake(session, po="PO-1", qty=10).id
    stock_ledger.soft_delete(session, lot_id)

    edited = stock_ledger.edit(session, lot_id, original_qty=12, note="found two more")
    assert (edited.original_qty, edited.current_qty) == (12, 12)
    assert edited.lifecycle == Lifecycle.TRASHED.value

    restored = stock_ledger.restore(session, lot_id)
    assert restored.current_qty == 12
    assert restored.note == "found two more"


def test_read_then_write_is_committed(file_engine):
    with Session(file_engine) as ses:
        assert stock_ledger.list_lots(ses) == []
        lot_id = stock_ledger.intake(ses, po="PO-1", qty=50).id
        stock_ledger.get_lot(ses, lot_id)
        stock_ledger.edit(ses, lot_id, original_qty=60)

    with Session(file_engine) as ses:
        lot = stock_ledger.get_lot(ses, lot_id)
        assert (lot.original_qty, lot.current_qty) == (60, 60)


def test_caller_transaction_owns_the_commit(file_engine):
    with Session(file_engine) as ses:
        with ses.begin():
            kept = stock_ledger.intake(ses, po="PO-1", qty=1).id
        ses.begin()
        stock_ledger.intake(ses, po="PO-2", qty=1)
        ses.rollback()

    with Session(file_engine) as ses:
        assert [lot.id for lot in stock_ledger.list_lots(ses)] == [kept]


def test_soft_delete_and_restore(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    stock_ledger.soft_delete(session, lot.id)

    assert stock_ledger.list_lots(session) == []
    trash = stock_ledger.list_lots(session, include_deleted=True)
    assert [t.id for t in trash] == [lot.id]
    assert trash[0].deleted_at is not None
    assert trash[0].current_qty == 10

    restored = stock_ledger.restore(session, lot.id)
    assert restored.lifecycle == Lifecycle.ACTIVE.value
    assert restored.deleted_at is None
    assert [t.id for t in stock_ledger.list_lots(session)] == [lot.id]


def test_soft_delete_twice_is_not_found(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    stock_ledger.soft_delete(session, lot.id)
    with pytest.raises(NotFound):
        stock_ledger.soft_delete(session, lot.id)
    with pytest.raises(NotFound):
        stock_ledger.restore(session, 12345)


def test_trashed_lot_cannot_ship(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    stock_ledger.soft_delete(session, lot.id)
    with pytest.raises(NotFound):
        shipment_ledger.confirm_shipment(session, [{"stock_id": lot.id, "qty": 1}])


def test_hard_delete_orphans_shipments(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10, product="Twill")
    lot_id = lot.id
    (shipment,) = shipment_ledger.confirm_shipment(
        session, [{"stock_id": lot_id, "qty": 3, "po": "PO-1", "product": "Twill"}]
    )
    shipment_id = shipment.id

    assert stock_ledger.hard_delete(session, lot_id) is Lifecycle.PURGED

    with pytest.raises(NotFound):
        stock_ledger.get_lot(session, lot_id)
    kept = session.get(Shipment, shipment_id)
    assert kept is not None
    assert kept.stock_id is None
    assert kept.orphaned
    assert kept.po == "PO-1"
    assert [s.id for s in shipment_ledger.list_shipments(session)] == [shipment_id]


def test_hard_delete_from_trash(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=10)
    lot_id = lot.id
    stock_ledger.soft_delete(session, lot_id)
    stock_ledger.hard_delete(session, lot_id)
    assert stock_ledger.list_lots(session, include_deleted=True) == []
    with pytest.raises(NotFound):
        stock_ledger.hard_delete(session, lot_id)


def test_list_lots_newest_first(session):
    first = stock_ledger.intake(session, po="PO-1", qty=1).id
    second = stock_ledger.intake(session, po="PO-2", qty=1).id
    assert [lot.id for lot in stock_ledger.list_lots(session)] == [second, first]
