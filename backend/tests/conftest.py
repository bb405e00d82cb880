import pytest
from sqlmodel import Session

from samplestock.core.database import make_engine
from samplestock.core.migrations import run_migrations


@pytest.fixture()
def engine():
    """Fresh in-memory store per test, schema migrated."""
    eng = make_engine("sqlite://")
    run_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def file_engine(tmp_path):
    """File-backed store: separate connections, real locking."""
    eng = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    run_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as ses:
        yield ses
