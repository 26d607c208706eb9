"""SQLAlchemy table mappings.

Rows are persistence shapes only; repositories translate them to and from
the domain dataclasses.  CHECK constraints repeat the line-level quantity
invariants so the database rejects a bad write even if application code
slips.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from fulfillment.domain.model.sales_order import SalesOrderStatus
from fulfillment.domain.model.status import DeliveryOrderStatus

QTY = Numeric(14, 4, asdecimal=True)
PRICE = Numeric(18, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class WarehouseRow(Base):
    __tablename__ = "warehouses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class SalesOrderRow(Base):
    __tablename__ = "sales_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    doc_number: Mapped[str] = mapped_column(String(50), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[SalesOrderStatus] = mapped_column(
        SAEnum(SalesOrderStatus, native_enum=False, length=20), nullable=False
    )

    lines: Mapped[list[SalesOrderLineRow]] = relationship(
        back_populates="sales_order",
        order_by="SalesOrderLineRow.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("company_id", "doc_number", name="uq_sales_orders_company_doc"),
    )


class SalesOrderLineRow(Base):
    __tablename__ = "sales_order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sales_order_id: Mapped[int] = mapped_column(
        ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    quantity_delivered: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=0)
    quantity_invoiced: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=0)
    uom: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    line_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sales_order: Mapped[SalesOrderRow] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_so_line_quantity_positive"),
        CheckConstraint(
            "quantity_delivered >= 0 AND quantity_delivered <= quantity",
            name="chk_so_line_delivered_within_promised",
        ),
        Index("ix_sales_order_lines_so", "sales_order_id"),
    )


class DeliveryOrderRow(Base):
    __tablename__ = "delivery_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    doc_number: Mapped[str] = mapped_column(String(50), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    sales_order_id: Mapped[int] = mapped_column(
        ForeignKey("sales_orders.id", ondelete="RESTRICT"), nullable=False
    )
    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False
    )
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[DeliveryOrderStatus] = mapped_column(
        SAEnum(DeliveryOrderStatus, native_enum=False, length=20), nullable=False
    )

    # Logistics
    driver_name: Mapped[str | None] = mapped_column(String(200))
    vehicle_number: Mapped[str | None] = mapped_column(String(50))
    tracking_number: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Audit
    created_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_by: Mapped[int | None] = mapped_column(Integer)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    shipped_by: Mapped[int | None] = mapped_column(Integer)
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_by: Mapped[int | None] = mapped_column(Integer)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[int | None] = mapped_column(Integer)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    lines: Mapped[list[DeliveryOrderLineRow]] = relationship(
        back_populates="delivery_order",
        order_by="DeliveryOrderLineRow.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id", "doc_number", name="uq_delivery_orders_company_doc"
        ),
        Index("ix_delivery_orders_company_status", "company_id", "status"),
        Index("ix_delivery_orders_so", "sales_order_id"),
    )


class DeliveryOrderLineRow(Base):
    __tablename__ = "delivery_order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    delivery_order_id: Mapped[int] = mapped_column(
        ForeignKey("delivery_orders.id", ondelete="CASCADE"), nullable=False
    )
    sales_order_line_id: Mapped[int] = mapped_column(
        ForeignKey("sales_order_lines.id", ondelete="RESTRICT"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_to_deliver: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    quantity_delivered: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=0)
    uom: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    notes: Mapped[str | None] = mapped_column(Text)
    line_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    delivery_order: Mapped[DeliveryOrderRow] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity_to_deliver > 0", name="chk_do_line_to_deliver_positive"),
        CheckConstraint(
            "quantity_delivered >= 0 AND quantity_delivered <= quantity_to_deliver",
            name="chk_do_line_quantities",
        ),
        Index("ix_delivery_order_lines_do", "delivery_order_id"),
        Index("ix_delivery_order_lines_sol", "sales_order_line_id"),
    )


class StockLevelRow(Base):
    __tablename__ = "stock_levels"

    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id", ondelete="CASCADE"), primary_key=True
    )
    product_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    on_hand: Mapped[Decimal] = mapped_column(QTY, nullable=False, default=0)

    __table_args__ = (CheckConstraint("on_hand >= 0", name="chk_stock_on_hand"),)


class StockAdjustmentRow(Base):
    __tablename__ = "stock_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    warehouse_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QTY, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    actor_id: Mapped[int | None] = mapped_column(Integer)
    ref_module: Mapped[str] = mapped_column(String(30), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(50), nullable=False)
    posted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
