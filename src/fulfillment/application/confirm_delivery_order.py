"""Application service: Confirm Delivery Order use case.

Confirmation is the commit step of the reservation: every line's
``quantity_delivered`` becomes its ``quantity_to_deliver``.  The ledger is
re-checked under row locks first, because it may have moved since the
order was created.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fulfillment.application.dto import DeliveryOrderDTO
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.model.status import DeliveryOrderStatus, ensure_transition
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.delivery_reconciliation import (
    DeliveryReconciliationService,
)

logger = logging.getLogger(__name__)


class ConfirmDeliveryOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, delivery_order_id: int, actor_id: int | None) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(delivery_order_id, for_update=True)
            if order is None:
                raise EntityNotFoundError(
                    f"Delivery order #{delivery_order_id} not found"
                )
            ensure_transition(order.status, DeliveryOrderStatus.CONFIRMED)
            if not order.lines:
                raise ValidationError("Cannot confirm a delivery order without lines")

            sales_order = uow.sales_orders.get_by_id(order.sales_order_id)
            if sales_order is None:
                raise EntityNotFoundError(
                    f"Sales order {order.sales_order_id} not found"
                )

            # Re-validate under lock, then commit quantities on the aggregate
            svc = DeliveryReconciliationService(uow.delivery_orders, uow.sales_orders)
            svc.reserve(order, sales_order)
            order.confirm(actor_id, datetime.now(timezone.utc))

            uow.delivery_orders.save(order)
            svc.sync_sales_order(order)
            uow.commit()

        logger.info(
            "Delivery order %s (%s) confirmed by %s",
            order.id,
            order.doc_number,
            actor_id,
        )
        return to_dto(order)
