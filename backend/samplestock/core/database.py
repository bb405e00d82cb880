"""
Store engine and transaction scope.

The module-level ``engine`` points at ``DATABASE_URL``.  Tests and scripts
build their own engine with :func:`make_engine` and pass sessions explicitly;
nothing in the ledgers reaches for this global.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import SessionTransactionOrigin
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from samplestock.core import config

logger = logging.getLogger(__name__)

_DEPTH_KEY = "ledger_depth"


def make_engine(url: str | None = None, *, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets per-connection pragmas and IMMEDIATE transactions."""
    url = url or config.DATABASE_URL
    logger.debug("store engine for %s", url.split("@")[-1])
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    in_memory = url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url
    kwargs: dict = {
        "echo": echo,
        "connect_args": {
            "check_same_thread": False,
            "timeout": config.SQLITE_BUSY_TIMEOUT_MS / 1000,
        },
    }
    if in_memory:
        # one shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    eng = create_engine(url, **kwargs)

    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_conn, _):
        # SQLAlchemy emits BEGIN itself (see _on_begin); the driver must not.
        dbapi_conn.isolation_level = None
        cur = dbapi_conn.cursor()
        try:
            if not in_memory:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute(f"PRAGMA busy_timeout={int(config.SQLITE_BUSY_TIMEOUT_MS)};")
            cur.execute("PRAGMA foreign_keys=ON;")
        finally:
            cur.close()

    @event.listens_for(eng, "begin")
    def _on_begin(conn):
        # Take the write lock up front: no dirty reads, no deadlocked upgrades.
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return eng


engine = make_engine()


def init_db(eng: Engine) -> list[str]:
    """Bring the schema up to date; returns the migration ids applied now."""
    from samplestock.core.migrations import run_migrations

    return run_migrations(eng)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run one ledger operation as a single atomic unit.

    Outermost call: the unit is committed on success.  If plain reads already
    autobegan a transaction on the session, that transaction becomes the unit
    and is committed with it.

    Nested call (inside another ``atomic`` block, or inside a transaction the
    caller opened with ``session.begin()``): the unit becomes a SAVEPOINT, so a
    failing row rolls back alone and the owner decides when to commit.
    """
    depth = session.info.get(_DEPTH_KEY, 0)
    outer = session.get_transaction()
    session.info[_DEPTH_KEY] = depth + 1
    try:
        if depth or (outer is not None and outer.origin is not SessionTransactionOrigin.AUTOBEGIN):
            with session.begin_nested():
                yield session
            # Core-level UPDATEs bypass the identity map
            session.expire_all()
        elif outer is not None:
            try:
                yield session
            except BaseException:
                session.rollback()
                raise
            session.commit()
        else:
            with session.begin():
                yield session
    finally:
        session.info[_DEPTH_KEY] = depth


def get_session() -> Generator[Session, None, None]:  # dependency
    with Session(engine) as ses:
        yield ses
