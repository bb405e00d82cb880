"""Two writers racing for the same lot through separate connections."""

import threading

from sqlmodel import Session

from samplestock.core.errors import InsufficientStock
from samplestock.models import StockLot
from samplestock.services import shipment_ledger, stock_ledger


def test_concurrent_confirmations_never_oversell(file_engine):
    with Session(file_engine) as ses:
        lot_id = stock_ledger.intake(ses, po="PO-9", qty=10).id
        ses.commit()

    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    lock = threading.Lock()

    def ship():
        with Session(file_engine) as ses:
            barrier.wait()
            try:
                shipment_ledger.confirm_shipment(ses, [{"stock_id": lot_id, "qty": 8, "po": "PO-9"}])
                result: object = "ok"
            except InsufficientStock as exc:
                result = exc
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=ship) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    assert outcomes.count("ok") == 1
    failures = [o for o in outcomes if isinstance(o, InsufficientStock)]
    assert len(failures) == 1
    assert failures[0].po == "PO-9"

    with Session(file_engine) as ses:
        assert ses.get(StockLot, lot_id).current_qty == 2
        shipped = shipment_ledger.list_shipments(ses)
        assert [s.qty for s in shipped] == [8]
