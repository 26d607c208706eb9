"""Unit of Work — the transaction boundary of every engine operation.

All reads and writes made through the repositories of one unit of work are
all-or-nothing.  Leaving the ``with`` block without calling ``commit()``
rolls everything back, including when an exception escapes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.repository.delivery_order_repository import (
    DeliveryOrderRepository,
)
from fulfillment.domain.repository.sales_order_repository import (
    SalesOrderRepository,
)
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository


class UnitOfWork(ABC):
    delivery_orders: DeliveryOrderRepository
    sales_orders: SalesOrderRepository
    warehouses: WarehouseRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change since ``__enter__`` durable and visible."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted changes.  A no-op after ``commit()``."""
