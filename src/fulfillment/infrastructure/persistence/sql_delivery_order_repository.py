"""SQLAlchemy-backed implementation of DeliveryOrderRepository.

An order and its lines are written together.  Lines are matched to their
rows by id: new lines are inserted, changed lines updated, and lines no
longer on the order deleted (only possible while the order is a draft).
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from fulfillment.domain.exceptions import DuplicateDocumentError, EntityNotFoundError
from fulfillment.domain.model.delivery_order import (
    DeliveryOrder,
    DeliveryOrderLine,
    format_doc_number,
)
from fulfillment.domain.model.value_objects import AuditStamp, Money, Quantity
from fulfillment.domain.repository.delivery_order_repository import (
    DeliveryOrderFilter,
    DeliveryOrderRepository,
)
from fulfillment.domain.service.quantity_ledger import LedgerEntry
from fulfillment.infrastructure.persistence.tables import (
    DeliveryOrderLineRow,
    DeliveryOrderRow,
)


class SqlDeliveryOrderRepository(DeliveryOrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- DeliveryOrderRepository interface ------------------------------------

    def get_by_id(
        self, delivery_order_id: int, for_update: bool = False
    ) -> DeliveryOrder | None:
        stmt = (
            select(DeliveryOrderRow)
            .options(selectinload(DeliveryOrderRow.lines))
            .where(DeliveryOrderRow.id == delivery_order_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return self._to_domain(row)

    def get_by_doc_number(
        self, company_id: int, doc_number: str
    ) -> DeliveryOrder | None:
        stmt = (
            select(DeliveryOrderRow)
            .options(selectinload(DeliveryOrderRow.lines))
            .where(
                DeliveryOrderRow.company_id == company_id,
                DeliveryOrderRow.doc_number == doc_number,
            )
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return self._to_domain(row)

    def ledger_entries(
        self, sales_order_line_ids: Iterable[int]
    ) -> list[LedgerEntry]:
        ids = sorted(set(sales_order_line_ids))
        if not ids:
            return []
        stmt = (
            select(
                DeliveryOrderLineRow.sales_order_line_id,
                DeliveryOrderLineRow.delivery_order_id,
                DeliveryOrderRow.status,
                DeliveryOrderLineRow.quantity_to_deliver,
                DeliveryOrderLineRow.quantity_delivered,
            )
            .join(DeliveryOrderRow, DeliveryOrderLineRow.delivery_order)
            .where(DeliveryOrderLineRow.sales_order_line_id.in_(ids))
            .order_by(DeliveryOrderLineRow.id)
        )
        return [
            LedgerEntry(
                sales_order_line_id=sol_id,
                delivery_order_id=do_id,
                status=status,
                quantity_to_deliver=Decimal(to_deliver),
                quantity_delivered=Decimal(delivered),
            )
            for sol_id, do_id, status, to_deliver, delivered in self._session.execute(stmt)
        ]

    def next_doc_number(self, company_id: int, delivery_date: date) -> str:
        first = delivery_date.replace(day=1)
        last = delivery_date.replace(
            day=calendar.monthrange(delivery_date.year, delivery_date.month)[1]
        )
        stmt = select(func.count(DeliveryOrderRow.id)).where(
            DeliveryOrderRow.company_id == company_id,
            DeliveryOrderRow.delivery_date.between(first, last),
        )
        count = self._session.execute(stmt).scalar_one()
        return format_doc_number(delivery_date, count + 1)

    def save(self, order: DeliveryOrder) -> None:
        if order.id is None:
            row = DeliveryOrderRow(lines=[])
        else:
            row = self._session.get(DeliveryOrderRow, order.id)
            if row is None:
                raise EntityNotFoundError(f"Delivery order #{order.id} not found")

        self._write_header(row, order)
        line_rows = self._sync_lines(row, order.lines)
        if order.id is None:
            self._session.add(row)

        try:
            self._session.flush()
        except IntegrityError as exc:
            if "doc_number" in str(exc.orig):
                raise DuplicateDocumentError(
                    f"Document number {order.doc_number} already exists"
                ) from exc
            raise

        order.id = row.id
        for line, line_row in zip(order.lines, line_rows):
            line.id = line_row.id

    def search(self, criteria: DeliveryOrderFilter) -> tuple[list[DeliveryOrder], int]:
        conditions = [DeliveryOrderRow.company_id == criteria.company_id]
        if criteria.sales_order_id is not None:
            conditions.append(DeliveryOrderRow.sales_order_id == criteria.sales_order_id)
        if criteria.warehouse_id is not None:
            conditions.append(DeliveryOrderRow.warehouse_id == criteria.warehouse_id)
        if criteria.customer_id is not None:
            conditions.append(DeliveryOrderRow.customer_id == criteria.customer_id)
        if criteria.status is not None:
            conditions.append(DeliveryOrderRow.status == criteria.status)
        if criteria.date_from is not None:
            conditions.append(DeliveryOrderRow.delivery_date >= criteria.date_from)
        if criteria.date_to is not None:
            conditions.append(DeliveryOrderRow.delivery_date <= criteria.date_to)
        if criteria.search:
            pattern = f"%{criteria.search.lower()}%"
            conditions.append(
                or_(
                    DeliveryOrderRow.doc_number.ilike(pattern),
                    DeliveryOrderRow.driver_name.ilike(pattern),
                    DeliveryOrderRow.tracking_number.ilike(pattern),
                )
            )

        total = self._session.execute(
            select(func.count(DeliveryOrderRow.id)).where(*conditions)
        ).scalar_one()
        stmt = (
            select(DeliveryOrderRow)
            .options(selectinload(DeliveryOrderRow.lines))
            .where(*conditions)
            .order_by(DeliveryOrderRow.delivery_date.desc(), DeliveryOrderRow.id.desc())
            .limit(criteria.limit)
            .offset(criteria.offset)
        )
        rows = self._session.execute(stmt).scalars().all()
        return [self._to_domain(row) for row in rows], total

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _write_header(row: DeliveryOrderRow, order: DeliveryOrder) -> None:
        row.doc_number = order.doc_number
        row.company_id = order.company_id
        row.sales_order_id = order.sales_order_id
        row.warehouse_id = order.warehouse_id
        row.customer_id = order.customer_id
        row.delivery_date = order.delivery_date
        row.status = order.status
        row.driver_name = order.driver_name
        row.vehicle_number = order.vehicle_number
        row.tracking_number = order.tracking_number
        row.notes = order.notes
        row.cancellation_reason = order.cancellation_reason
        row.created_by, row.created_at = _unstamp(order.created)
        row.confirmed_by, row.confirmed_at = _unstamp(order.confirmed)
        row.shipped_by, row.shipped_at = _unstamp(order.shipped)
        row.delivered_by, row.delivered_at = _unstamp(order.delivered)
        row.cancelled_by, row.cancelled_at = _unstamp(order.cancelled)
        row.updated_at = order.updated_at

    @staticmethod
    def _sync_lines(
        row: DeliveryOrderRow, lines: list[DeliveryOrderLine]
    ) -> list[DeliveryOrderLineRow]:
        existing = {line_row.id: line_row for line_row in row.lines}
        kept: list[DeliveryOrderLineRow] = []
        for line in lines:
            line_row = existing.get(line.id) if line.id is not None else None
            if line_row is None:
                line_row = DeliveryOrderLineRow()
            line_row.sales_order_line_id = line.sales_order_line_id
            line_row.product_id = line.product_id
            line_row.quantity_to_deliver = line.quantity_to_deliver.value
            line_row.quantity_delivered = line.quantity_delivered
            line_row.uom = line.uom
            line_row.unit_price = line.unit_price.amount
            line_row.currency = line.unit_price.currency
            line_row.notes = line.notes
            line_row.line_order = line.line_order
            kept.append(line_row)
        # delete-orphan cascade removes rows dropped from the collection
        row.lines = kept
        return kept

    @staticmethod
    def _to_domain(row: DeliveryOrderRow) -> DeliveryOrder:
        return DeliveryOrder(
            id=row.id,
            doc_number=row.doc_number,
            company_id=row.company_id,
            sales_order_id=row.sales_order_id,
            warehouse_id=row.warehouse_id,
            customer_id=row.customer_id,
            delivery_date=row.delivery_date,
            status=row.status,
            driver_name=row.driver_name,
            vehicle_number=row.vehicle_number,
            tracking_number=row.tracking_number,
            notes=row.notes,
            cancellation_reason=row.cancellation_reason,
            created=_stamp(row.created_by, row.created_at),
            confirmed=_stamp(row.confirmed_by, row.confirmed_at),
            shipped=_stamp(row.shipped_by, row.shipped_at),
            delivered=_stamp(row.delivered_by, row.delivered_at),
            cancelled=_stamp(row.cancelled_by, row.cancelled_at),
            updated_at=_utc(row.updated_at),
            lines=[
                DeliveryOrderLine(
                    id=line.id,
                    sales_order_line_id=line.sales_order_line_id,
                    product_id=line.product_id,
                    quantity_to_deliver=Quantity(Decimal(line.quantity_to_deliver)),
                    unit_price=Money(Decimal(line.unit_price), line.currency),
                    uom=line.uom,
                    quantity_delivered=Decimal(line.quantity_delivered),
                    notes=line.notes,
                    line_order=line.line_order,
                )
                for line in row.lines
            ],
        )


def _utc(value: datetime) -> datetime:
    # SQLite drops the offset; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _stamp(actor_id: int | None, at: datetime | None) -> AuditStamp | None:
    if at is None:
        return None
    return AuditStamp(actor_id, _utc(at))


def _unstamp(stamp: AuditStamp | None) -> tuple[int | None, datetime | None]:
    if stamp is None:
        return None, None
    return stamp.actor_id, stamp.at
