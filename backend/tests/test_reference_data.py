import pytest

from samplestock.core.errors import ValidationError
from samplestock.services import reference_data, shipment_ledger, stock_ledger


def test_ensure_courier_is_idempotent(session):
    first = reference_data.ensure_courier(session, "SF Express")
    first_id = first.id
    again = reference_data.ensure_courier(session, "  SF Express ")
    assert again.id == first_id
    reference_data.ensure_courier(session, "DHL")
    assert [c.name for c in reference_data.list_couriers(session)] == ["DHL", "SF Express"]


def test_ensure_courier_requires_name(session):
    with pytest.raises(ValidationError) as exc:
        reference_data.ensure_courier(session, " ")
    assert exc.value.message == "Name is required"


def test_client_purpose_upsert(session):
    reference_data.set_client_purpose(session, "ACME", "Lab dip")
    reference_data.set_client_purpose(session, "ACME", "Photo shoot")
    reference_data.set_client_purpose(session, "Globex", None)

    assert reference_data.get_client_purpose(session, "ACME") == "Photo shoot"
    assert reference_data.get_client_purpose(session, "Nobody") is None
    assert reference_data.get_client_purpose(session, None) is None
    assert reference_data.client_purpose_map(session) == {"ACME": "Photo shoot", "Globex": None}
    assert [r.client for r in reference_data.list_client_purposes(session)] == ["ACME", "Globex"]


def test_sync_master_data_skips_rows_without_po(session):
    rows = [
        {"using_po": "PO-1", "client": "ACME", "product_name": "Denim"},
        {"using_po": "", "client": "ACME"},
        {"using_po": " PO-2 ", "client_po": "C-2"},
    ]
    report = reference_data.sync_master_data(session, rows)
    assert report["total_rows"] == 3
    assert report["success_rows"] == 2
    assert report["skipped_rows"] == 1
    assert report["error_rows"] == 0
    assert reference_data.master_data_count(session) == 2
    assert reference_data.lookup_po(session, "PO-2").client_po == "C-2"


def test_sync_master_data_clear_replaces(session):
    reference_data.sync_master_data(session, [{"using_po": "OLD"}])
    reference_data.sync_master_data(session, [{"using_po": "NEW"}], clear=True)
    assert [r.using_po for r in reference_data.list_master_data(session)] == ["NEW"]


def test_sync_master_data_appends_without_clear(session):
    reference_data.sync_master_data(session, [{"using_po": "PO-1", "client": "A"}])
    reference_data.sync_master_data(session, [{"using_po": "PO-1", "client": "B"}])
    assert reference_data.master_data_count(session) == 2
    assert reference_data.lookup_po(session, "PO-1").client == "B"


def test_sync_master_data_rejects_unmapped_batch(session):
    reference_data.sync_master_data(session, [{"using_po": "KEEP"}])
    rows = [{"yxdh": f"PO-{i}"} for i in range(6)]

    with pytest.raises(ValidationError) as exc:
        reference_data.sync_master_data(session, rows, clear=True)
    assert "batch of 6" in exc.value.message
    # the clear was rolled back with the batch
    assert [r.using_po for r in reference_data.list_master_data(session)] == ["KEEP"]


def test_small_empty_batch_is_not_rejected(session):
    report = reference_data.sync_master_data(session, [{"using_po": ""}] * 5)
    assert report["success_rows"] == 0
    assert report["skipped_rows"] == 5


def test_reset_store(session):
    lot = stock_ledger.intake(session, po="PO-1", qty=5)
    shipment_ledger.confirm_shipment(session, [{"stock_id": lot.id, "courier": "DHL"}])
    reference_data.sync_master_data(session, [{"using_po": "PO-1"}])

    reference_data.reset_store(session)

    assert stock_ledger.list_lots(session) == []
    assert shipment_ledger.list_shipments(session) == []
    assert reference_data.list_couriers(session) == []
    assert reference_data.master_data_count(session) == 1


def test_sync_clf_data_replaces_everything(session):
    assert reference_data.sync_clf_data(session, [{"ttx_po": "PO-0", "batch": "B0"}]) == 1

    rows = [
        {"TTX单号": "PO-1", "批次": "B1", "PO": "C-1"},
        {"ttx_po": "PO-2", "batch": "B2", "client_po": "C-2"},
        {"TTX单号": "", "ttx_po": "PO-3"},
    ]
    assert reference_data.sync_clf_data(session, rows) == 3

    stored = [(r.ttx_po, r.batch, r.client_po) for r in reference_data.list_clf_data(session)]
    assert stored == [("PO-1", "B1", "C-1"), ("PO-2", "B2", "C-2"), ("PO-3", None, None)]


def test_sync_clf_data_with_empty_batch_clears(session):
    reference_data.sync_clf_data(session, [{"ttx_po": "PO-1"}])
    assert reference_data.sync_clf_data(session, []) == 0
    assert reference_data.list_clf_data(session) == []


def test_model_modules_carry_docstrings():
    from samplestock.models import reference, shipment

    assert reference.__doc__.startswith("Reference data")
    assert shipment.__doc__.startswith("Outbound shipment records")
