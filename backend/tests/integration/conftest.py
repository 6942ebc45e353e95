"""Fixtures for tests that run the real SQL against SQLite.

The metadata schema is attached as a second in-memory database named
``subgraphs`` so schema-qualified statements work unchanged.
"""

import pytest
from sqlalchemy import create_engine, event, func, insert, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reclaim.models import Base, metadata_registry


@pytest.fixture
def engine():
    """In-memory SQLite engine with the metadata and ledger tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        # pysqlite's own transaction handling breaks SAVEPOINT; SQLAlchemy emits BEGIN
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("ATTACH DATABASE ':memory:' AS subgraphs")

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    metadata_registry.create_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the SQLite engine."""
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def seed(engine):
    """Insert rows into metadata tables: seed(table, id, **columns)."""

    def _seed(table, *ids, **columns):
        with engine.begin() as conn:
            conn.execute(insert(table), [{"id": row_id, **columns} for row_id in ids])

    return _seed


@pytest.fixture
def count_rows(engine):
    """Count rows in a table, optionally filtered by a where clause."""

    def _count(table, where=None):
        query = select(func.count()).select_from(table)
        if where is not None:
            query = query.where(where)
        with engine.connect() as conn:
            return conn.execute(query).scalar_one()

    return _count
