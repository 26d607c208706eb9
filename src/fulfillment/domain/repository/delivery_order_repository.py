"""Abstract repository for DeliveryOrder aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from fulfillment.domain.model.delivery_order import DeliveryOrder
from fulfillment.domain.model.status import DeliveryOrderStatus
from fulfillment.domain.service.quantity_ledger import LedgerEntry


@dataclass(frozen=True)
class DeliveryOrderFilter:
    """Criteria for listing a company's delivery orders.  ``None`` means any."""

    company_id: int
    sales_order_id: int | None = None
    warehouse_id: int | None = None
    customer_id: int | None = None
    status: DeliveryOrderStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None  # doc number, driver or tracking number
    limit: int = 50
    offset: int = 0


class DeliveryOrderRepository(ABC):

    @abstractmethod
    def get_by_id(
        self, delivery_order_id: int, for_update: bool = False
    ) -> DeliveryOrder | None:
        """Return a delivery order with its lines, or None if not found.

        With ``for_update`` the order row stays locked until the enclosing
        unit of work ends.
        """

    @abstractmethod
    def get_by_doc_number(
        self, company_id: int, doc_number: str
    ) -> DeliveryOrder | None:
        """Return the company's delivery order with this document number."""

    @abstractmethod
    def ledger_entries(
        self, sales_order_line_ids: Iterable[int]
    ) -> list[LedgerEntry]:
        """Every delivery order line (any status) referencing the given lines."""

    @abstractmethod
    def next_doc_number(self, company_id: int, delivery_date: date) -> str:
        """Generate the next ``DO-YYYYMM-#####`` number for the company."""

    @abstractmethod
    def save(self, order: DeliveryOrder) -> None:
        """Insert or update the order and its lines together.

        Assigns ids to a new order and its lines.  Raises
        DuplicateDocumentError if the document number is taken.
        """

    @abstractmethod
    def search(self, criteria: DeliveryOrderFilter) -> tuple[list[DeliveryOrder], int]:
        """One page of matching orders, newest delivery date first.

        Returns the page and the total number of matches.
        """
