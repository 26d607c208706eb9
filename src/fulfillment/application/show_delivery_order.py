"""Application service: Show Delivery Order use case (query)."""

from __future__ import annotations

from fulfillment.application.dto import DeliveryOrderDTO
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.repository.unit_of_work import UnitOfWork


class ShowDeliveryOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, delivery_order_id: int) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(delivery_order_id)
        if order is None:
            raise EntityNotFoundError(f"Delivery order #{delivery_order_id} not found")
        return to_dto(order)

    def by_doc_number(self, company_id: int, doc_number: str) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_doc_number(company_id, doc_number)
        if order is None:
            raise EntityNotFoundError(
                f"Delivery order {doc_number} not found for company {company_id}"
            )
        return to_dto(order)
