"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class DeliveryLineSpec:
    """Input: ship *quantity* of the product on one sales order line."""

    sales_order_line_id: int
    product_id: int
    quantity: Decimal | int | str
    note: str | None = None
    line_order: int | None = None  # defaults to the position in the request


@dataclass(frozen=True)
class CreateDeliveryOrderInput:
    company_id: int
    sales_order_id: int
    warehouse_id: int
    delivery_date: date
    lines: list[DeliveryLineSpec]
    created_by: int | None = None
    doc_number: str | None = None  # generated when omitted
    driver_name: str | None = None
    vehicle_number: str | None = None
    tracking_number: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class UpdateDeliveryOrderInput:
    """Input: edit a DRAFT order.  ``None`` fields are left unchanged."""

    delivery_order_id: int
    delivery_date: date | None = None
    driver_name: str | None = None
    vehicle_number: str | None = None
    tracking_number: str | None = None
    notes: str | None = None
    lines: list[DeliveryLineSpec] | None = None


@dataclass(frozen=True)
class DeliveryOrderLineDTO:
    id: int
    sales_order_line_id: int
    product_id: int
    quantity_to_deliver: Decimal
    quantity_delivered: Decimal
    uom: str
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str
    notes: str | None
    line_order: int


@dataclass(frozen=True)
class DeliveryOrderDTO:
    id: int
    doc_number: str
    company_id: int
    sales_order_id: int
    warehouse_id: int
    customer_id: int
    delivery_date: str
    status: str
    lines: list[DeliveryOrderLineDTO]
    total_quantity: Decimal
    total: str
    driver_name: str | None = None
    vehicle_number: str | None = None
    tracking_number: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    created_at: str | None = None
    confirmed_at: str | None = None
    shipped_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None


@dataclass(frozen=True)
class DeliverableLineDTO:
    """Output: how much of a sales order line can still be promised."""

    sales_order_line_id: int
    product_id: int
    uom: str
    unit_price: str
    quantity: Decimal
    quantity_delivered: Decimal
    remaining_quantity: Decimal


@dataclass(frozen=True)
class DeliverableLinesDTO:
    sales_order_id: int
    sales_order_number: str
    customer_id: int
    lines: list[DeliverableLineDTO] = field(default_factory=list)


@dataclass(frozen=True)
class ListDeliveryOrdersInput:
    """Input: filters for listing a company's delivery orders."""

    company_id: int
    sales_order_id: int | None = None
    warehouse_id: int | None = None
    customer_id: int | None = None
    status: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class DeliveryOrderPageDTO:
    orders: list[DeliveryOrderDTO]
    total: int
    limit: int
    offset: int
