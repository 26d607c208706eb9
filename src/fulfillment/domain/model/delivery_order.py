"""DeliveryOrder aggregate — one shipment attempt against a sales order.

The DeliveryOrder is an aggregate root that owns its lines.  Every status
change goes through the transition table in ``status.py``; the methods here
only add the per-transition effects (quantity commit/release, audit stamps).

Ledger checks that involve *other* delivery orders cannot be answered by a
single aggregate and live in ``DeliveryReconciliationService``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.status import (
    DeliveryOrderStatus,
    ensure_editable,
    ensure_transition,
)
from fulfillment.domain.model.value_objects import AuditStamp, Money, Quantity

# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
DOC_NUMBER_PREFIX = "DO"
MIN_CANCEL_REASON_LENGTH = 10
MAX_CANCEL_REASON_LENGTH = 500
MAX_LINES = 200


def format_doc_number(delivery_date: date, sequence: int) -> str:
    """Build ``DO-YYYYMM-#####`` from the delivery month and a sequence."""
    return f"{DOC_NUMBER_PREFIX}-{delivery_date:%Y%m}-{sequence:05d}"


@dataclass
class DeliveryOrderLine:
    """A quantity of one sales order line to ship.

    ``unit_price`` and ``uom`` are copied from the sales order line when the
    delivery line is built and never follow later repricing.
    """

    id: int | None
    sales_order_line_id: int
    product_id: int
    quantity_to_deliver: Quantity
    unit_price: Money
    uom: str
    quantity_delivered: Decimal = Decimal("0")
    notes: str | None = None
    line_order: int = 0

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity_to_deliver.value

    def commit(self) -> None:
        self.quantity_delivered = self.quantity_to_deliver.value

    def release(self) -> None:
        self.quantity_delivered = Decimal("0")


@dataclass
class DeliveryOrder:
    """Aggregate root for delivery orders.

    Use ``DeliveryOrder.create()`` for new orders.  ``__init__`` stays plain
    so repositories can reconstitute persisted orders without re-validating.
    """

    id: int | None
    doc_number: str
    company_id: int
    sales_order_id: int
    warehouse_id: int
    customer_id: int
    delivery_date: date
    lines: list[DeliveryOrderLine]
    status: DeliveryOrderStatus = DeliveryOrderStatus.DRAFT
    driver_name: str | None = None
    vehicle_number: str | None = None
    tracking_number: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    created: AuditStamp | None = None
    confirmed: AuditStamp | None = None
    shipped: AuditStamp | None = None
    delivered: AuditStamp | None = None
    cancelled: AuditStamp | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        doc_number: str,
        company_id: int,
        sales_order_id: int,
        warehouse_id: int,
        customer_id: int,
        delivery_date: date,
        lines: list[DeliveryOrderLine],
        created_by: int | None,
        driver_name: str | None = None,
        vehicle_number: str | None = None,
        tracking_number: str | None = None,
        notes: str | None = None,
    ) -> DeliveryOrder:
        """Create a new DRAFT delivery order, enforcing local invariants."""
        if not doc_number or not doc_number.strip():
            raise ValidationError("Document number is required")
        _check_line_count(lines)

        now = datetime.now(timezone.utc)
        return DeliveryOrder(
            id=None,
            doc_number=doc_number.strip(),
            company_id=company_id,
            sales_order_id=sales_order_id,
            warehouse_id=warehouse_id,
            customer_id=customer_id,
            delivery_date=delivery_date,
            lines=[_fresh(line) for line in lines],
            driver_name=driver_name,
            vehicle_number=vehicle_number,
            tracking_number=tracking_number,
            notes=notes,
            created=AuditStamp(created_by, now),
            updated_at=now,
        )

    # --- Editing (DRAFT only) -------------------------------------------------

    def replace_lines(self, lines: list[DeliveryOrderLine]) -> None:
        ensure_editable(self.status)
        _check_line_count(lines)
        self.lines = [_fresh(line) for line in lines]
        self._touch()

    def update_details(
        self,
        *,
        delivery_date: date | None = None,
        driver_name: str | None = None,
        vehicle_number: str | None = None,
        tracking_number: str | None = None,
        notes: str | None = None,
        today: date | None = None,
    ) -> None:
        """Change header fields.  ``None`` means "leave unchanged"."""
        ensure_editable(self.status)
        if delivery_date is not None:
            if delivery_date < (today or date.today()):
                raise ValidationError("Delivery date cannot be in the past")
            self.delivery_date = delivery_date
        if driver_name is not None:
            self.driver_name = driver_name
        if vehicle_number is not None:
            self.vehicle_number = vehicle_number
        if tracking_number is not None:
            self.tracking_number = tracking_number
        if notes is not None:
            self.notes = notes
        self._touch()

    # --- State transitions ----------------------------------------------------

    def confirm(self, actor_id: int | None, at: datetime) -> None:
        """Transition DRAFT -> CONFIRMED and commit every line's quantity.

        Capacity against other delivery orders must be re-validated *before*
        calling this (coordinated by the reconciliation service).
        """
        ensure_transition(self.status, DeliveryOrderStatus.CONFIRMED)
        if not self.lines:
            raise ValidationError("Cannot confirm a delivery order without lines")
        for line in self.lines:
            line.commit()
        self.status = DeliveryOrderStatus.CONFIRMED
        self.confirmed = AuditStamp(actor_id, at)
        self._touch(at)

    def mark_in_transit(
        self,
        at: datetime,
        actor_id: int | None = None,
        tracking_number: str | None = None,
    ) -> None:
        ensure_transition(self.status, DeliveryOrderStatus.IN_TRANSIT)
        if tracking_number is not None:
            self.tracking_number = tracking_number
        self.status = DeliveryOrderStatus.IN_TRANSIT
        self.shipped = AuditStamp(actor_id, at)
        self._touch(at)

    def mark_delivered(self, delivered_at: datetime, actor_id: int | None) -> None:
        """Transition IN_TRANSIT -> DELIVERED.

        Quantities were already committed at confirmation, so nothing
        changes on the lines.
        """
        ensure_transition(self.status, DeliveryOrderStatus.DELIVERED)
        delivered_at = _aware(delivered_at)
        if self.confirmed is not None and delivered_at < _aware(self.confirmed.at):
            raise ValidationError(
                "Delivery time cannot be earlier than the confirmation time"
            )
        self.status = DeliveryOrderStatus.DELIVERED
        self.delivered = AuditStamp(actor_id, delivered_at)
        self._touch()

    def cancel(self, reason: str, actor_id: int | None, at: datetime) -> bool:
        """Transition DRAFT|CONFIRMED|IN_TRANSIT -> CANCELLED.

        Returns True when committed quantities were released, i.e. the
        sales order line aggregates need recomputing.
        """
        reason = (reason or "").strip()
        if len(reason) < MIN_CANCEL_REASON_LENGTH:
            raise ValidationError(
                f"Cancellation reason must be at least "
                f"{MIN_CANCEL_REASON_LENGTH} characters"
            )
        if len(reason) > MAX_CANCEL_REASON_LENGTH:
            raise ValidationError(
                f"Cancellation reason must be at most "
                f"{MAX_CANCEL_REASON_LENGTH} characters"
            )
        ensure_transition(self.status, DeliveryOrderStatus.CANCELLED)

        released = self.status.holds_reservation
        if released:
            for line in self.lines:
                line.release()
        self.status = DeliveryOrderStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled = AuditStamp(actor_id, at)
        self._touch(at)
        return released

    # --- Computed properties --------------------------------------------------

    @property
    def sales_order_line_ids(self) -> list[int]:
        return sorted({line.sales_order_line_id for line in self.lines})

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.quantity_to_deliver.value for line in self.lines), Decimal("0"))

    @property
    def total(self) -> Money:
        result = Money(Decimal("0.00"))
        for line in self.lines:
            result = result + line.line_total
        return result

    def requested_by_line(self) -> dict[int, Decimal]:
        """Sum of quantity_to_deliver per referenced sales order line."""
        return requested_by_line(self.lines)

    # --- Internal helpers -----------------------------------------------------

    def _touch(self, at: datetime | None = None) -> None:
        self.updated_at = at or datetime.now(timezone.utc)


def requested_by_line(lines: list[DeliveryOrderLine]) -> dict[int, Decimal]:
    totals: dict[int, Decimal] = {}
    for line in lines:
        totals[line.sales_order_line_id] = (
            totals.get(line.sales_order_line_id, Decimal("0"))
            + line.quantity_to_deliver.value
        )
    return totals


def _check_line_count(lines: list[DeliveryOrderLine]) -> None:
    if not lines:
        raise ValidationError("Delivery order must contain at least one line")
    if len(lines) > MAX_LINES:
        raise ValidationError(f"Maximum {MAX_LINES} lines per delivery order")


def _fresh(line: DeliveryOrderLine) -> DeliveryOrderLine:
    # Lines enter an order uncommitted; only confirm() reserves them.
    line.quantity_delivered = Decimal("0")
    return line


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
