"""Mapping between DTOs and domain objects, shared by the use cases."""

from __future__ import annotations

from datetime import timezone

from fulfillment.application.dto import (
    DeliveryLineSpec,
    DeliveryOrderDTO,
    DeliveryOrderLineDTO,
)
from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.delivery_order import DeliveryOrder
from fulfillment.domain.model.value_objects import AuditStamp, Quantity
from fulfillment.domain.service.delivery_reconciliation import RequestedLine


def to_requested_lines(specs: list[DeliveryLineSpec]) -> list[RequestedLine]:
    """Validate raw line input before anything is read or written."""
    if not specs:
        raise ValidationError("Delivery order must contain at least one line")

    requested: list[RequestedLine] = []
    for position, spec in enumerate(specs, start=1):
        try:
            quantity = Quantity.of(spec.quantity)
        except ValidationError as exc:
            raise ValidationError(f"Line {position}: {exc}") from exc
        line_order = spec.line_order if spec.line_order is not None else position
        if line_order < 0:
            raise ValidationError(f"Line {position}: line order cannot be negative")
        requested.append(
            RequestedLine(
                sales_order_line_id=spec.sales_order_line_id,
                product_id=spec.product_id,
                quantity=quantity,
                notes=spec.note,
                line_order=line_order,
            )
        )
    return requested


def to_dto(order: DeliveryOrder) -> DeliveryOrderDTO:
    return DeliveryOrderDTO(
        id=order.id,  # type: ignore[arg-type]
        doc_number=order.doc_number,
        company_id=order.company_id,
        sales_order_id=order.sales_order_id,
        warehouse_id=order.warehouse_id,
        customer_id=order.customer_id,
        delivery_date=order.delivery_date.isoformat(),
        status=order.status.value,
        lines=[
            DeliveryOrderLineDTO(
                id=line.id,  # type: ignore[arg-type]
                sales_order_line_id=line.sales_order_line_id,
                product_id=line.product_id,
                quantity_to_deliver=line.quantity_to_deliver.value,
                quantity_delivered=line.quantity_delivered,
                uom=line.uom,
                unit_price=str(line.unit_price),
                line_total=str(line.line_total),
                notes=line.notes,
                line_order=line.line_order,
            )
            for line in sorted(order.lines, key=lambda l: (l.line_order, l.id or 0))
        ],
        total_quantity=order.total_quantity,
        total=str(order.total),
        driver_name=order.driver_name,
        vehicle_number=order.vehicle_number,
        tracking_number=order.tracking_number,
        notes=order.notes,
        cancellation_reason=order.cancellation_reason,
        created_at=_stamp(order.created),
        confirmed_at=_stamp(order.confirmed),
        shipped_at=_stamp(order.shipped),
        delivered_at=_stamp(order.delivered),
        cancelled_at=_stamp(order.cancelled),
    )


def _stamp(stamp: AuditStamp | None) -> str | None:
    if stamp is None:
        return None
    at = stamp.at
    if at.tzinfo is not None:
        at = at.astimezone(timezone.utc)
    return at.strftime("%Y-%m-%d %H:%M UTC")
