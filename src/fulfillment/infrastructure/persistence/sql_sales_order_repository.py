"""SQLAlchemy-backed implementation of SalesOrderRepository."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.model.sales_order import SalesOrder, SalesOrderLine
from fulfillment.domain.model.value_objects import Money
from fulfillment.domain.repository.sales_order_repository import SalesOrderRepository
from fulfillment.infrastructure.persistence.tables import (
    SalesOrderLineRow,
    SalesOrderRow,
)


class SqlSalesOrderRepository(SalesOrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- SalesOrderRepository interface ---------------------------------------

    def get_by_id(self, sales_order_id: int) -> SalesOrder | None:
        stmt = (
            select(SalesOrderRow)
            .options(selectinload(SalesOrderRow.lines))
            .where(SalesOrderRow.id == sales_order_id)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return self._to_domain(row)

    def lock_lines(self, line_ids: Iterable[int]) -> list[SalesOrderLine]:
        ids = sorted(set(line_ids))
        if not ids:
            return []
        stmt = (
            select(SalesOrderLineRow)
            .where(SalesOrderLineRow.id.in_(ids))
            .order_by(SalesOrderLineRow.id)
            .with_for_update()
        )
        rows = self._session.execute(stmt).scalars().all()
        return [self._line_to_domain(row) for row in rows]

    def add(self, sales_order: SalesOrder) -> None:
        row = SalesOrderRow(
            doc_number=sales_order.doc_number,
            company_id=sales_order.company_id,
            customer_id=sales_order.customer_id,
            status=sales_order.status,
            lines=[
                SalesOrderLineRow(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    quantity_delivered=line.quantity_delivered,
                    quantity_invoiced=line.quantity_invoiced,
                    uom=line.uom,
                    unit_price=line.unit_price.amount,
                    currency=line.unit_price.currency,
                    line_order=line.line_order,
                )
                for line in sales_order.lines
            ],
        )
        self._session.add(row)
        self._session.flush()

        sales_order.id = row.id
        for line, line_row in zip(sales_order.lines, row.lines):
            line.id = line_row.id
            line.sales_order_id = row.id

    def save(self, sales_order: SalesOrder) -> None:
        row = self._session.get(SalesOrderRow, sales_order.id)
        if row is None:
            raise EntityNotFoundError(f"Sales order {sales_order.id} not found")

        row.status = sales_order.status
        rows_by_id = {line_row.id: line_row for line_row in row.lines}
        for line in sales_order.lines:
            line_row = rows_by_id.get(line.id)  # type: ignore[arg-type]
            if line_row is None:
                raise EntityNotFoundError(f"Sales order line {line.id} not found")
            # Unchanged values produce no UPDATE, so untouched lines stay unlocked
            _assign(line_row, "quantity", line.quantity)
            _assign(line_row, "quantity_delivered", line.quantity_delivered)
            _assign(line_row, "quantity_invoiced", line.quantity_invoiced)
            _assign(line_row, "unit_price", line.unit_price.amount)
            _assign(line_row, "currency", line.unit_price.currency)
        self._session.flush()

    # --- Serialization --------------------------------------------------------

    def _to_domain(self, row: SalesOrderRow) -> SalesOrder:
        return SalesOrder(
            id=row.id,
            doc_number=row.doc_number,
            company_id=row.company_id,
            customer_id=row.customer_id,
            status=row.status,
            lines=[self._line_to_domain(line) for line in row.lines],
        )

    @staticmethod
    def _line_to_domain(row: SalesOrderLineRow) -> SalesOrderLine:
        return SalesOrderLine(
            id=row.id,
            sales_order_id=row.sales_order_id,
            product_id=row.product_id,
            quantity=Decimal(row.quantity),
            unit_price=Money(Decimal(row.unit_price), row.currency),
            uom=row.uom,
            quantity_delivered=Decimal(row.quantity_delivered),
            quantity_invoiced=Decimal(row.quantity_invoiced),
            line_order=row.line_order,
        )


def _assign(row: object, attr: str, value: object) -> None:
    if getattr(row, attr) != value:
        setattr(row, attr, value)
