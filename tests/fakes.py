"""In-memory fakes for testing.

These implement the same abstract interfaces as the SQL gateway but keep
everything in dicts.  A ``FakeUnitOfWork`` stages its writes and applies
them on commit, and takes per-row locks the way ``SELECT ... FOR UPDATE``
does, so concurrency tests exercise real contention.  No file I/O, no
database.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from fulfillment.application.dto import CreateDeliveryOrderInput, DeliveryLineSpec
from fulfillment.domain.exceptions import (
    DuplicateDocumentError,
    InventoryAdjustmentError,
)
from fulfillment.domain.model.delivery_order import DeliveryOrder, format_doc_number
from fulfillment.domain.model.sales_order import (
    SalesOrder,
    SalesOrderLine,
    SalesOrderStatus,
)
from fulfillment.domain.model.value_objects import Money
from fulfillment.domain.repository.delivery_order_repository import (
    DeliveryOrderFilter,
    DeliveryOrderRepository,
)
from fulfillment.domain.repository.sales_order_repository import (
    SalesOrderRepository,
)
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository
from fulfillment.domain.service.inventory_adapter import (
    InventoryAdapter,
    StockAdjustment,
)
from fulfillment.domain.service.quantity_ledger import LedgerEntry


class InMemoryStore:
    """Committed state shared by every FakeUnitOfWork (and thread)."""

    def __init__(self) -> None:
        self.delivery_orders: dict[int, DeliveryOrder] = {}
        self.sales_orders: dict[int, SalesOrder] = {}
        self.warehouses: set[int] = set()
        self.stock: dict[tuple[int, int], Decimal] = {}
        self.adjustments: dict[str, StockAdjustment] = {}
        self.commits = 0
        self._guard = threading.RLock()
        self._row_locks: dict[tuple[str, int], threading.Lock] = {}
        self._next_id = 1

    # --- Seeding --------------------------------------------------------------

    def add_warehouse(self, warehouse_id: int) -> None:
        self.warehouses.add(warehouse_id)

    def add_sales_order(self, sales_order: SalesOrder) -> SalesOrder:
        with self._guard:
            if sales_order.id is None:
                sales_order.id = self.next_id()
            for line in sales_order.lines:
                if line.id is None:
                    line.id = self.next_id()
                line.sales_order_id = sales_order.id
            self.sales_orders[sales_order.id] = copy.deepcopy(sales_order)
        return sales_order

    def set_stock(self, warehouse_id: int, product_id: int, on_hand: Decimal) -> None:
        self.stock[(warehouse_id, product_id)] = Decimal(on_hand)

    # --- Internals ------------------------------------------------------------

    def next_id(self) -> int:
        with self._guard:
            value = self._next_id
            self._next_id += 1
            return value

    def row_lock(self, key: tuple[str, int]) -> threading.Lock:
        with self._guard:
            return self._row_locks.setdefault(key, threading.Lock())


class FakeUnitOfWork(UnitOfWork):

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._active = False

    def __enter__(self) -> FakeUnitOfWork:
        if self._active:
            raise RuntimeError("Unit of work is already active")
        self._active = True
        self._committed = False
        self.staged_delivery_orders: dict[int, DeliveryOrder] = {}
        self.staged_sales_orders: dict[int, SalesOrder] = {}
        self.staged_stock: dict[tuple[int, int], Decimal] = {}
        self.staged_adjustments: dict[str, StockAdjustment] = {}
        self._held: list[threading.Lock] = []
        self._held_keys: set[tuple[str, int]] = set()
        self.delivery_orders = FakeDeliveryOrderRepository(self)
        self.sales_orders = FakeSalesOrderRepository(self)
        self.warehouses = FakeWarehouseRepository(self.store)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            for lock in reversed(self._held):
                lock.release()
            self._held = []
            self._held_keys = set()
            self._active = False

    def acquire(self, key: tuple[str, int]) -> None:
        """Row lock held until the unit of work ends.  Re-entrant per unit."""
        if key in self._held_keys:
            return
        lock = self.store.row_lock(key)
        lock.acquire()
        self._held.append(lock)
        self._held_keys.add(key)

    def commit(self) -> None:
        store = self.store
        with store._guard:
            for order in self.staged_delivery_orders.values():
                for other in store.delivery_orders.values():
                    if (
                        other.id != order.id
                        and other.company_id == order.company_id
                        and other.doc_number == order.doc_number
                    ):
                        raise DuplicateDocumentError(
                            f"Document number {order.doc_number} already exists"
                        )
            for order_id, order in self.staged_delivery_orders.items():
                store.delivery_orders[order_id] = copy.deepcopy(order)
            for so_id, so in self.staged_sales_orders.items():
                store.sales_orders[so_id] = copy.deepcopy(so)
            store.stock.update(self.staged_stock)
            store.adjustments.update(self.staged_adjustments)
            store.commits += 1
        self._committed = True
        self.staged_delivery_orders = {}
        self.staged_sales_orders = {}
        self.staged_stock = {}
        self.staged_adjustments = {}

    def rollback(self) -> None:
        if self._committed:
            return
        self.staged_delivery_orders = {}
        self.staged_sales_orders = {}
        self.staged_stock = {}
        self.staged_adjustments = {}

    # --- Views over committed + staged state ---------------------------------

    def all_delivery_orders(self) -> dict[int, DeliveryOrder]:
        with self.store._guard:
            merged = dict(self.store.delivery_orders)
        merged.update(self.staged_delivery_orders)
        return merged

    def all_sales_orders(self) -> dict[int, SalesOrder]:
        with self.store._guard:
            merged = dict(self.store.sales_orders)
        merged.update(self.staged_sales_orders)
        return merged


class FakeDeliveryOrderRepository(DeliveryOrderRepository):

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self._uow = uow

    def get_by_id(
        self, delivery_order_id: int, for_update: bool = False
    ) -> DeliveryOrder | None:
        if for_update:
            self._uow.acquire(("delivery_order", delivery_order_id))
        order = self._uow.all_delivery_orders().get(delivery_order_id)
        return copy.deepcopy(order)

    def get_by_doc_number(
        self, company_id: int, doc_number: str
    ) -> DeliveryOrder | None:
        for order in self._uow.all_delivery_orders().values():
            if order.company_id == company_id and order.doc_number == doc_number:
                return copy.deepcopy(order)
        return None

    def ledger_entries(
        self, sales_order_line_ids: Iterable[int]
    ) -> list[LedgerEntry]:
        wanted = set(sales_order_line_ids)
        return [
            LedgerEntry(
                sales_order_line_id=line.sales_order_line_id,
                delivery_order_id=order.id,  # type: ignore[arg-type]
                status=order.status,
                quantity_to_deliver=line.quantity_to_deliver.value,
                quantity_delivered=line.quantity_delivered,
            )
            for order in self._uow.all_delivery_orders().values()
            for line in order.lines
            if line.sales_order_line_id in wanted
        ]

    def next_doc_number(self, company_id: int, delivery_date: date) -> str:
        count = sum(
            1
            for order in self._uow.all_delivery_orders().values()
            if order.company_id == company_id
            and order.delivery_date.year == delivery_date.year
            and order.delivery_date.month == delivery_date.month
        )
        return format_doc_number(delivery_date, count + 1)

    def save(self, order: DeliveryOrder) -> None:
        existing = self.get_by_doc_number(order.company_id, order.doc_number)
        if existing is not None and existing.id != order.id:
            raise DuplicateDocumentError(
                f"Document number {order.doc_number} already exists"
            )
        if order.id is None:
            order.id = self._uow.store.next_id()
        for line in order.lines:
            if line.id is None:
                line.id = self._uow.store.next_id()
        self._uow.staged_delivery_orders[order.id] = copy.deepcopy(order)

    def search(self, criteria: DeliveryOrderFilter) -> tuple[list[DeliveryOrder], int]:
        term = (criteria.search or "").lower()

        def matches(order: DeliveryOrder) -> bool:
            c = criteria
            return (
                order.company_id == c.company_id
                and c.sales_order_id in (None, order.sales_order_id)
                and c.warehouse_id in (None, order.warehouse_id)
                and c.customer_id in (None, order.customer_id)
                and c.status in (None, order.status)
                and (c.date_from is None or order.delivery_date >= c.date_from)
                and (c.date_to is None or order.delivery_date <= c.date_to)
                and (
                    not term
                    or any(
                        term in (text or "").lower()
                        for text in (
                            order.doc_number,
                            order.driver_name,
                            order.tracking_number,
                        )
                    )
                )
            )

        found = sorted(
            (o for o in self._uow.all_delivery_orders().values() if matches(o)),
            key=lambda o: (o.delivery_date, o.id),
            reverse=True,
        )
        page = found[criteria.offset : criteria.offset + criteria.limit]
        return [copy.deepcopy(o) for o in page], len(found)


class FakeSalesOrderRepository(SalesOrderRepository):

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self._uow = uow

    def get_by_id(self, sales_order_id: int) -> SalesOrder | None:
        return copy.deepcopy(self._uow.all_sales_orders().get(sales_order_id))

    def lock_lines(self, line_ids: Iterable[int]) -> list[SalesOrderLine]:
        locked: list[SalesOrderLine] = []
        for line_id in sorted(set(line_ids)):
            if self._find(line_id) is None:
                continue
            self._uow.acquire(("sales_order_line", line_id))
            # Read again under the lock
            line = self._find(line_id)
            if line is not None:
                locked.append(line)
        return locked

    def add(self, sales_order: SalesOrder) -> None:
        store = self._uow.store
        if sales_order.id is None:
            sales_order.id = store.next_id()
        for line in sales_order.lines:
            if line.id is None:
                line.id = store.next_id()
            line.sales_order_id = sales_order.id
        self._uow.staged_sales_orders[sales_order.id] = copy.deepcopy(sales_order)

    def save(self, sales_order: SalesOrder) -> None:
        self._uow.staged_sales_orders[sales_order.id] = copy.deepcopy(sales_order)  # type: ignore[index]

    def _find(self, line_id: int) -> SalesOrderLine | None:
        for so in self._uow.all_sales_orders().values():
            for line in so.lines:
                if line.id == line_id:
                    return copy.deepcopy(line)
        return None


class FakeWarehouseRepository(WarehouseRepository):

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def exists(self, warehouse_id: int) -> bool:
        return warehouse_id in self._store.warehouses


class FakeInventoryAdapter(InventoryAdapter):
    """Stock moves staged in *uow* and applied when it commits."""

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self._uow = uow
        self.calls: list[StockAdjustment] = []

    def post_adjustment(self, adjustment: StockAdjustment) -> None:
        self.calls.append(adjustment)
        uow, store = self._uow, self._uow.store
        if (
            adjustment.reference in store.adjustments
            or adjustment.reference in uow.staged_adjustments
        ):
            return

        key = (adjustment.warehouse_id, adjustment.product_id)
        on_hand = uow.staged_stock.get(key, store.stock.get(key))
        if on_hand is None:
            raise InventoryAdjustmentError(
                f"No stock record for product {adjustment.product_id} "
                f"in warehouse {adjustment.warehouse_id}"
            )
        if on_hand + adjustment.quantity < 0:
            raise InventoryAdjustmentError(
                f"Insufficient stock for product {adjustment.product_id}"
            )
        uow.staged_stock[key] = on_hand + adjustment.quantity
        uow.staged_adjustments[adjustment.reference] = adjustment


# --- Builders -----------------------------------------------------------------

COMPANY_ID = 1
WAREHOUSE_ID = 7
WIDGET = 501
GADGET = 502


def seed_sales_order(
    store: InMemoryStore,
    *,
    widget_qty: str = "100",
    gadget_qty: str = "10",
    status: SalesOrderStatus = SalesOrderStatus.CONFIRMED,
    company_id: int = COMPANY_ID,
    doc_number: str = "SO-0001",
) -> SalesOrder:
    """A confirmed sales order with a Widget line ($15.00) and a Gadget line ($25.00)."""
    store.add_warehouse(WAREHOUSE_ID)
    return store.add_sales_order(
        SalesOrder(
            id=None,
            doc_number=doc_number,
            company_id=company_id,
            customer_id=42,
            status=status,
            lines=[
                SalesOrderLine(
                    id=None,
                    sales_order_id=None,
                    product_id=WIDGET,
                    quantity=Decimal(widget_qty),
                    unit_price=Money.of("15.00"),
                    line_order=1,
                ),
                SalesOrderLine(
                    id=None,
                    sales_order_id=None,
                    product_id=GADGET,
                    quantity=Decimal(gadget_qty),
                    unit_price=Money.of("25.00"),
                    uom="BOX",
                    line_order=2,
                ),
            ],
        )
    )


def create_input(
    sales_order: SalesOrder,
    *quantities: tuple[int, str],
    delivery_date: date = date(2030, 1, 15),
    doc_number: str | None = None,
) -> CreateDeliveryOrderInput:
    """Create request for ``(line index, quantity)`` pairs on *sales_order*."""
    return CreateDeliveryOrderInput(
        company_id=sales_order.company_id,
        sales_order_id=sales_order.id,  # type: ignore[arg-type]
        warehouse_id=WAREHOUSE_ID,
        delivery_date=delivery_date,
        lines=[
            DeliveryLineSpec(
                sales_order_line_id=sales_order.lines[index].id,  # type: ignore[arg-type]
                product_id=sales_order.lines[index].product_id,
                quantity=qty,
            )
            for index, qty in quantities
        ],
        created_by=900,
        doc_number=doc_number,
    )
