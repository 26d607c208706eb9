"""Integration tests for the CreateDeliveryOrder use case."""

from dataclasses import replace
from decimal import Decimal

import pytest

from fulfillment.application.cancel_delivery_order import CancelDeliveryOrderHandler
from fulfillment.application.create_delivery_order import CreateDeliveryOrderHandler
from fulfillment.application.dto import DeliveryLineSpec
from fulfillment.domain.exceptions import (
    CapacityExceededError,
    DuplicateDocumentError,
    EntityNotFoundError,
    ValidationError,
)
from fulfillment.domain.model.sales_order import SalesOrderStatus
from tests.fakes import (
    GADGET,
    FakeUnitOfWork,
    InMemoryStore,
    create_input,
    seed_sales_order,
)


def _setup(**kwargs):
    store = InMemoryStore()
    so = seed_sales_order(store, **kwargs)
    handler = CreateDeliveryOrderHandler(FakeUnitOfWork(store))
    return store, so, handler


class TestCreateDeliveryOrderHappyPath:

    def test_creates_draft_with_generated_number(self):
        store, so, handler = _setup()

        dto = handler.handle(create_input(so, (0, "60"), (1, "2.5")))

        assert dto.status == "DRAFT"
        assert dto.doc_number == "DO-203001-00001"
        assert dto.customer_id == 42
        assert [l.quantity_to_deliver for l in dto.lines] == [Decimal("60"), Decimal("2.5")]
        assert all(l.quantity_delivered == 0 for l in dto.lines)
        assert dto.total == "$962.50"
        assert dto.id in store.delivery_orders

    def test_lines_snapshot_price_and_uom(self):
        _, so, handler = _setup()

        dto = handler.handle(create_input(so, (1, "1")))

        assert dto.lines[0].unit_price == "$25.00"
        assert dto.lines[0].uom == "BOX"

    def test_draft_does_not_touch_sales_order_aggregates(self):
        store, so, handler = _setup()

        handler.handle(create_input(so, (0, "60")))

        stored = store.sales_orders[so.id]
        assert stored.lines[0].quantity_delivered == 0
        assert stored.status == SalesOrderStatus.CONFIRMED

    def test_numbers_are_sequential_per_month(self):
        _, so, handler = _setup()

        first = handler.handle(create_input(so, (0, "1")))
        second = handler.handle(create_input(so, (0, "1")))

        assert first.doc_number == "DO-203001-00001"
        assert second.doc_number == "DO-203001-00002"

    def test_supplied_doc_number_is_kept(self):
        _, so, handler = _setup()
        dto = handler.handle(create_input(so, (0, "1"), doc_number="DO-MANUAL-1"))
        assert dto.doc_number == "DO-MANUAL-1"

    def test_processing_sales_order_is_deliverable(self):
        _, so, handler = _setup(status=SalesOrderStatus.PROCESSING)
        assert handler.handle(create_input(so, (0, "1"))).status == "DRAFT"


class TestCreateDeliveryOrderValidation:

    def test_no_lines_rejected_before_any_write(self):
        store, so, handler = _setup()
        with pytest.raises(ValidationError, match="at least one line"):
            handler.handle(create_input(so))
        assert store.commits == 0

    def test_zero_quantity_rejected(self):
        store, so, handler = _setup()
        with pytest.raises(ValidationError, match="Line 2: Quantity must be greater than zero"):
            handler.handle(create_input(so, (0, "1"), (1, "0")))
        assert store.delivery_orders == {}

    def test_unknown_sales_order(self):
        _, so, handler = _setup()
        request = replace(create_input(so, (0, "1")), sales_order_id=999)
        with pytest.raises(EntityNotFoundError, match="Sales order 999"):
            handler.handle(request)

    def test_sales_order_of_other_company(self):
        _, so, handler = _setup()
        request = replace(create_input(so, (0, "1")), company_id=2)
        with pytest.raises(ValidationError, match="different company"):
            handler.handle(request)

    @pytest.mark.parametrize(
        "status",
        [SalesOrderStatus.DRAFT, SalesOrderStatus.COMPLETED, SalesOrderStatus.CANCELLED],
    )
    def test_sales_order_not_deliverable(self, status):
        _, so, handler = _setup(status=status)
        with pytest.raises(ValidationError, match="CONFIRMED or PROCESSING"):
            handler.handle(create_input(so, (0, "1")))

    def test_unknown_warehouse(self):
        _, so, handler = _setup()
        request = replace(create_input(so, (0, "1")), warehouse_id=404)
        with pytest.raises(EntityNotFoundError, match="Warehouse 404"):
            handler.handle(request)

    def test_line_of_another_sales_order(self):
        store, so, handler = _setup()
        other = seed_sales_order(store, doc_number="SO-0002")
        request = replace(
            create_input(so, (0, "1")),
            lines=[DeliveryLineSpec(other.lines[0].id, other.lines[0].product_id, "1")],
        )
        with pytest.raises(EntityNotFoundError, match="not found on sales order SO-0001"):
            handler.handle(request)

    def test_product_mismatch(self):
        _, so, handler = _setup()
        request = replace(
            create_input(so, (0, "1")),
            lines=[DeliveryLineSpec(so.lines[0].id, GADGET, "1")],
        )
        with pytest.raises(ValidationError, match="does not match sales order line"):
            handler.handle(request)

    def test_duplicate_doc_number(self):
        store, so, handler = _setup()
        handler.handle(create_input(so, (0, "1"), doc_number="DO-X"))
        with pytest.raises(DuplicateDocumentError, match="DO-X"):
            handler.handle(create_input(so, (0, "1"), doc_number="DO-X"))
        assert len(store.delivery_orders) == 1


class TestCreateDeliveryOrderCapacity:

    def test_request_over_promised_rejected(self):
        store, so, handler = _setup()
        with pytest.raises(CapacityExceededError, match="exceeds remaining 100"):
            handler.handle(create_input(so, (0, "100.5")))
        assert store.delivery_orders == {}

    def test_repeated_lines_are_summed(self):
        _, so, handler = _setup()
        with pytest.raises(CapacityExceededError, match="Requested quantity 110"):
            handler.handle(create_input(so, (0, "60"), (0, "50")))

    def test_draft_orders_count_against_remaining(self):
        # DO-A (60) is still a draft, DO-B (50) must not fit in the 40 left
        _, so, handler = _setup()
        handler.handle(create_input(so, (0, "60")))

        with pytest.raises(CapacityExceededError) as info:
            handler.handle(create_input(so, (0, "50")))
        assert info.value.remaining == Decimal("40")

    def test_cancelled_orders_free_their_quantity(self):
        store, so, handler = _setup()
        dto = handler.handle(create_input(so, (0, "100")))
        CancelDeliveryOrderHandler(FakeUnitOfWork(store)).handle(
            dto.id, "Replaced by a new order", actor_id=1
        )

        again = handler.handle(create_input(so, (0, "100")))
        assert again.status == "DRAFT"

    def test_failed_line_rejects_whole_order(self):
        store, so, handler = _setup()
        with pytest.raises(CapacityExceededError):
            handler.handle(create_input(so, (0, "5"), (1, "11")))
        assert store.delivery_orders == {}
