from sqlalchemy import inspect
from sqlmodel import Session, SQLModel

from samplestock.core.database import make_engine
from samplestock.core.migrations import MIGRATIONS, run_migrations
from samplestock.models import Lifecycle, StockLot
from samplestock.services import shipment_ledger, stock_ledger

LEGACY_SCHEMA = [
    """
    CREATE TABLE inventory (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        po TEXT NOT NULL,
        client TEXT,
        client_po TEXT,
        product TEXT,
        item_no TEXT,
        batch TEXT,
        note TEXT,
        date_in TEXT,
        size TEXT,
        original_qty INTEGER DEFAULT 0,
        current_qty INTEGER DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        deleted_at DATETIME DEFAULT NULL
    )
    """,
    """
    CREATE TABLE shipments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        stock_id INTEGER,
        po TEXT,
        product TEXT,
        recipient TEXT,
        courier TEXT,
        tracking TEXT,
        date_sent TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY(stock_id) REFERENCES inventory(id)
    )
    """,
    """
    CREATE TABLE couriers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "INSERT INTO inventory (po, original_qty, current_qty, date_in) VALUES ('PO-1', 50, 30, '2024-08-05')",
    "INSERT INTO inventory (po, original_qty, current_qty, deleted_at) "
    "VALUES ('PO-2', 5, 5, '2024-08-06T09:30:00.000Z')",
    "INSERT INTO shipments (stock_id, po, date_sent) VALUES (1, 'PO-1', '2024-08-07')",
]


def _legacy_engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'legacy.sqlite'}")
    with eng.begin() as conn:
        for stmt in LEGACY_SCHEMA:
            conn.exec_driver_sql(stmt)
    return eng


def test_fresh_store_gets_every_step(engine):
    tables = set(inspect(engine).get_table_names())
    expected = {"inventory", "shipments", "couriers", "master_data", "client_purposes", "clf_data", "schema_migrations"}
    assert expected <= tables
    # the fixture already migrated; nothing is left to do
    assert run_migrations(engine) == []


def test_all_steps_recorded_once(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
    assert run_migrations(eng) == [m.id for m in MIGRATIONS]
    assert run_migrations(eng) == []
    eng.dispose()


def test_legacy_store_is_upgraded(tmp_path):
    eng = _legacy_engine(tmp_path)
    applied = run_migrations(eng)
    assert applied == [m.id for m in MIGRATIONS]

    insp = inspect(eng)
    shipment_cols = {c["name"] for c in insp.get_columns("shipments")}
    assert {"image_path", "qty", "client", "size", "deleted_at", "lifecycle"} <= shipment_cols
    assert "lifecycle" in {c["name"] for c in insp.get_columns("inventory")}
    assert "ix_inventory_lifecycle" in {ix["name"] for ix in insp.get_indexes("inventory")}

    with Session(eng) as ses:
        active = stock_ledger.list_lots(ses)
        assert [lot.po for lot in active] == ["PO-1"]
        trashed = stock_ledger.list_lots(ses, include_deleted=True)
        assert [lot.po for lot in trashed] == ["PO-2"]
        assert trashed[0].lifecycle == Lifecycle.TRASHED.value
        assert trashed[0].deleted_at.year == 2024

        legacy = shipment_ledger.list_shipments(ses)
        assert [s.qty for s in legacy] == [1]
        ses.rollback()

        # the upgraded store takes new work
        shipment_ledger.confirm_shipment(ses, [{"stock_id": 1, "qty": 10}])
        assert ses.get(StockLot, 1).current_qty == 20
        ses.commit()

    assert run_migrations(eng) == []
    eng.dispose()


def test_store_created_from_models_is_adopted(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'created.db'}")
    SQLModel.metadata.create_all(eng)
    assert run_migrations(eng) == [m.id for m in MIGRATIONS]
    eng.dispose()
