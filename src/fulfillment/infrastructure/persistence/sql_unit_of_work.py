"""SQLAlchemy-backed implementation of UnitOfWork.

One session per ``with`` block.  The session begins a transaction on first
use; ``commit()`` ends it, and leaving the block without committing rolls
it back.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.infrastructure.persistence.sql_delivery_order_repository import (
    SqlDeliveryOrderRepository,
)
from fulfillment.infrastructure.persistence.sql_sales_order_repository import (
    SqlSalesOrderRepository,
)
from fulfillment.infrastructure.persistence.sql_warehouse_repository import (
    SqlWarehouseRepository,
)

logger = logging.getLogger(__name__)


class SqlUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None
        self._committed = False

    @property
    def session(self) -> Session:
        """The session of the open unit of work."""
        if self._session is None:
            raise RuntimeError("Unit of work is not active")
        return self._session

    def __enter__(self) -> SqlUnitOfWork:
        if self._session is not None:
            raise RuntimeError("Unit of work is already active")
        self._session = self._session_factory()
        self._committed = False
        self.delivery_orders = SqlDeliveryOrderRepository(self._session)
        self.sales_orders = SqlSalesOrderRepository(self._session)
        self.warehouses = SqlWarehouseRepository(self._session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                logger.warning("Rolling back unit of work after %s", exc_type.__name__)
            super().__exit__(exc_type, exc, tb)
        finally:
            self.session.close()
            self._session = None

    def commit(self) -> None:
        self.session.commit()
        self._committed = True

    def rollback(self) -> None:
        if not self._committed:
            self.session.rollback()
