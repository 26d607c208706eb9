"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from fulfillment.infrastructure.config import Settings
from fulfillment.infrastructure.inventory.sql_inventory_adapter import (
    SqlInventoryAdapter,
)
from fulfillment.infrastructure.persistence.database import (
    build_engine,
    build_session_factory,
)
from fulfillment.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork


@lru_cache(maxsize=None)
def _engine(database_url: str, echo_sql: bool) -> Engine:
    return build_engine(Settings(database_url=database_url, echo_sql=echo_sql))


def engine(settings: Settings) -> Engine:
    """One engine (and connection pool) per database URL."""
    return _engine(settings.database_url, settings.echo_sql)


def session_factory(settings: Settings) -> sessionmaker[Session]:
    return build_session_factory(engine(settings))


def unit_of_work(settings: Settings) -> SqlUnitOfWork:
    return SqlUnitOfWork(session_factory(settings))


def inventory_adapter(
    uow: SqlUnitOfWork, settings: Settings
) -> SqlInventoryAdapter | None:
    """The stock adapter sharing *uow*'s transaction, or None when disabled."""
    if not settings.inventory_enabled:
        return None
    return SqlInventoryAdapter(uow)
