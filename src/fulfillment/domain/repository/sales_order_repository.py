"""Abstract repository for the SalesOrder aggregate.

Fulfillment never creates sales orders in production; ``add`` exists for
seeding and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from fulfillment.domain.model.sales_order import SalesOrder, SalesOrderLine


class SalesOrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, sales_order_id: int) -> SalesOrder | None:
        """Return a sales order with its lines, or None if not found."""

    @abstractmethod
    def lock_lines(self, line_ids: Iterable[int]) -> list[SalesOrderLine]:
        """Row-lock the given lines until the unit of work ends.

        Locks are taken in ascending id order.  Unknown ids are skipped, so
        callers compare the result against what they asked for.
        """

    @abstractmethod
    def add(self, sales_order: SalesOrder) -> None:
        """Persist a new sales order, assigning ids to it and its lines."""

    @abstractmethod
    def save(self, sales_order: SalesOrder) -> None:
        """Persist status, line prices and maintained line aggregates."""
