"""Engine and session factory construction."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from fulfillment.infrastructure.config import Settings
from fulfillment.infrastructure.persistence.tables import Base

SQLITE_BUSY_TIMEOUT = 30  # seconds a writer waits for the database lock


def build_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            echo=settings.echo_sql,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
        )
        _serialize_sqlite_transactions(engine)
        return engine
    return create_engine(
        url,
        pool_size=5,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.echo_sql,
    )


def _serialize_sqlite_transactions(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock when it begins.

    SQLite ignores ``FOR UPDATE``, and pysqlite defers ``BEGIN`` until the
    first write, so reads would otherwise run unlocked.  ``BEGIN IMMEDIATE``
    holds the database lock from the first statement until commit or
    rollback, which gives the row locks the repositories ask for.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(engine)
