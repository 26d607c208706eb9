"""Application service: Update Delivery Order use case (DRAFT only).

Replacing the line set re-runs the full ledger validation against the
*current* sales order lines; the order's own previous lines do not count
against it.
"""

from __future__ import annotations

import logging

from fulfillment.application.dto import DeliveryOrderDTO, UpdateDeliveryOrderInput
from fulfillment.application.mapping import to_dto, to_requested_lines
from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.model.status import ensure_editable
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.delivery_reconciliation import (
    DeliveryReconciliationService,
)

logger = logging.getLogger(__name__)


class UpdateDeliveryOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, request: UpdateDeliveryOrderInput) -> DeliveryOrderDTO:
        requested = (
            to_requested_lines(request.lines) if request.lines is not None else None
        )

        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(
                request.delivery_order_id, for_update=True
            )
            if order is None:
                raise EntityNotFoundError(
                    f"Delivery order #{request.delivery_order_id} not found"
                )
            ensure_editable(order.status)

            order.update_details(
                delivery_date=request.delivery_date,
                driver_name=request.driver_name,
                vehicle_number=request.vehicle_number,
                tracking_number=request.tracking_number,
                notes=request.notes,
            )

            if requested is not None:
                sales_order = uow.sales_orders.get_by_id(order.sales_order_id)
                if sales_order is None:
                    raise EntityNotFoundError(
                        f"Sales order {order.sales_order_id} not found"
                    )
                if not sales_order.is_deliverable:
                    raise ValidationError(
                        f"Sales order must be CONFIRMED or PROCESSING, "
                        f"got {sales_order.status.value}"
                    )
                svc = DeliveryReconciliationService(
                    uow.delivery_orders, uow.sales_orders
                )
                lines = svc.build_lines(
                    sales_order, requested, exclude_delivery_order_id=order.id
                )
                order.replace_lines(lines)

            uow.delivery_orders.save(order)
            uow.commit()

        logger.info("Updated delivery order %s (%s)", order.id, order.doc_number)
        return to_dto(order)
