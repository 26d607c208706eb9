"""Application service: Mark In Transit use case.  No quantity effect."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fulfillment.application.dto import DeliveryOrderDTO
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class MarkInTransitHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(
        self,
        delivery_order_id: int,
        tracking_number: str | None = None,
        actor_id: int | None = None,
    ) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(delivery_order_id, for_update=True)
            if order is None:
                raise EntityNotFoundError(
                    f"Delivery order #{delivery_order_id} not found"
                )
            order.mark_in_transit(
                datetime.now(timezone.utc),
                actor_id=actor_id,
                tracking_number=tracking_number,
            )
            uow.delivery_orders.save(order)
            uow.commit()

        logger.info("Delivery order %s (%s) in transit", order.id, order.doc_number)
        return to_dto(order)
