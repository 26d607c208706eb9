"""Application service: Create Delivery Order use case.

Validates the request against the sales order and the quantity ledger and
persists a new DRAFT delivery order with its lines in one transaction.
Nothing is reserved yet: ``quantity_delivered`` stays 0 on every line until
the order is confirmed.
"""

from __future__ import annotations

import logging

from fulfillment.application.dto import CreateDeliveryOrderInput, DeliveryOrderDTO
from fulfillment.application.mapping import to_dto, to_requested_lines
from fulfillment.domain.exceptions import (
    DuplicateDocumentError,
    EntityNotFoundError,
    ValidationError,
)
from fulfillment.domain.model.delivery_order import DeliveryOrder
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.delivery_reconciliation import (
    DeliveryReconciliationService,
)

logger = logging.getLogger(__name__)


class CreateDeliveryOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, request: CreateDeliveryOrderInput) -> DeliveryOrderDTO:
        """Create a DRAFT delivery order.

        Steps:
        1. Validate the raw lines (non-empty, positive quantities).
        2. Resolve the sales order and warehouse (fail if not found).
        3. Lock the referenced sales order lines and check each request
           against the ledger.
        4. Persist order + lines atomically and return a DTO.
        """
        requested = to_requested_lines(request.lines)

        with self._uow as uow:
            sales_order = uow.sales_orders.get_by_id(request.sales_order_id)
            if sales_order is None:
                raise EntityNotFoundError(
                    f"Sales order {request.sales_order_id} not found"
                )
            if sales_order.company_id != request.company_id:
                raise ValidationError(
                    f"Sales order {sales_order.doc_number} belongs to a different company"
                )
            if not sales_order.is_deliverable:
                raise ValidationError(
                    f"Sales order must be CONFIRMED or PROCESSING, "
                    f"got {sales_order.status.value}"
                )
            if not uow.warehouses.exists(request.warehouse_id):
                raise EntityNotFoundError(
                    f"Warehouse {request.warehouse_id} not found"
                )

            doc_number = request.doc_number
            if doc_number:
                existing = uow.delivery_orders.get_by_doc_number(
                    request.company_id, doc_number
                )
                if existing is not None:
                    raise DuplicateDocumentError(
                        f"Delivery order {doc_number} already exists"
                    )

            svc = DeliveryReconciliationService(uow.delivery_orders, uow.sales_orders)
            lines = svc.build_lines(sales_order, requested)

            # Numbered under the line locks so concurrent requests on the
            # same sales order get distinct sequences
            if not doc_number:
                doc_number = uow.delivery_orders.next_doc_number(
                    request.company_id, request.delivery_date
                )

            order = DeliveryOrder.create(
                doc_number=doc_number,
                company_id=request.company_id,
                sales_order_id=sales_order.id,  # type: ignore[arg-type]
                warehouse_id=request.warehouse_id,
                customer_id=sales_order.customer_id,
                delivery_date=request.delivery_date,
                lines=lines,
                created_by=request.created_by,
                driver_name=request.driver_name,
                vehicle_number=request.vehicle_number,
                tracking_number=request.tracking_number,
                notes=request.notes,
            )
            uow.delivery_orders.save(order)
            uow.commit()

        logger.info(
            "Created delivery order %s (%s) for sales order %s with %d lines",
            order.id,
            order.doc_number,
            sales_order.doc_number,
            len(order.lines),
        )
        return to_dto(order)
