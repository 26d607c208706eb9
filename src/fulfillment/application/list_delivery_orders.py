"""Application service: List Delivery Orders use case (query)."""

from __future__ import annotations

from fulfillment.application.dto import DeliveryOrderPageDTO, ListDeliveryOrdersInput
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.status import DeliveryOrderStatus
from fulfillment.domain.repository.delivery_order_repository import (
    DeliveryOrderFilter,
)
from fulfillment.domain.repository.unit_of_work import UnitOfWork

MAX_PAGE_SIZE = 1000


class ListDeliveryOrdersHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, request: ListDeliveryOrdersInput) -> DeliveryOrderPageDTO:
        criteria = _to_filter(request)
        with self._uow as uow:
            orders, total = uow.delivery_orders.search(criteria)
        return DeliveryOrderPageDTO(
            orders=[to_dto(order) for order in orders],
            total=total,
            limit=criteria.limit,
            offset=criteria.offset,
        )


def _to_filter(request: ListDeliveryOrdersInput) -> DeliveryOrderFilter:
    if request.company_id <= 0:
        raise ValidationError("Company id must be positive")
    if not 1 <= request.limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    if request.offset < 0:
        raise ValidationError("Offset cannot be negative")
    if request.date_from and request.date_to and request.date_from > request.date_to:
        raise ValidationError("date_from must not be after date_to")

    status = None
    if request.status:
        try:
            status = DeliveryOrderStatus(request.status.upper())
        except ValueError:
            raise ValidationError(f"Unknown delivery order status '{request.status}'")

    return DeliveryOrderFilter(
        company_id=request.company_id,
        sales_order_id=request.sales_order_id,
        warehouse_id=request.warehouse_id,
        customer_id=request.customer_id,
        status=status,
        date_from=request.date_from,
        date_to=request.date_to,
        search=(request.search or "").strip() or None,
        limit=request.limit,
        offset=request.offset,
    )
