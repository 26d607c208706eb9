"""CLI commands for the DeliveryOrder aggregate."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import click

from fulfillment.application.cancel_delivery_order import CancelDeliveryOrderHandler
from fulfillment.application.confirm_delivery_order import ConfirmDeliveryOrderHandler
from fulfillment.application.create_delivery_order import CreateDeliveryOrderHandler
from fulfillment.application.dto import (
    CreateDeliveryOrderInput,
    DeliveryLineSpec,
    DeliveryOrderDTO,
    ListDeliveryOrdersInput,
    UpdateDeliveryOrderInput,
)
from fulfillment.application.list_delivery_orders import ListDeliveryOrdersHandler
from fulfillment.application.mark_delivered import MarkDeliveredHandler
from fulfillment.application.mark_in_transit import MarkInTransitHandler
from fulfillment.application.show_delivery_order import ShowDeliveryOrderHandler
from fulfillment.application.update_delivery_order import UpdateDeliveryOrderHandler
from fulfillment.domain.exceptions import DomainException
from fulfillment.domain.model.status import DeliveryOrderStatus
from fulfillment.infrastructure.bootstrap import inventory_adapter, unit_of_work
from fulfillment.infrastructure.config import Settings

_DATE = click.DateTime(formats=["%Y-%m-%d"])
_TIMESTAMP = click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d"])


def _parse_lines(raw: str) -> list[DeliveryLineSpec]:
    """Parse '11:501:3,12:502:1.5' (line:product:qty) into DeliveryLineSpec list."""
    specs: list[DeliveryLineSpec] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        parts = chunk.split(":")
        if len(parts) != 3:
            raise click.BadParameter(
                f"Invalid line format '{chunk}'. Expected 'LineId:ProductId:Quantity'."
            )
        line_str, product_str, qty_str = (p.strip() for p in parts)
        try:
            line_id, product_id = int(line_str), int(product_str)
        except ValueError:
            raise click.BadParameter(f"Invalid ids in line '{chunk}'.")
        specs.append(
            DeliveryLineSpec(
                sales_order_line_id=line_id, product_id=product_id, quantity=qty_str
            )
        )
    return specs


def _qty(value: Decimal) -> str:
    return f"{value.normalize():f}"


def _display_order(dto: DeliveryOrderDTO) -> None:
    """Shared formatting for displaying a delivery order."""
    click.echo(f"Delivery order #{dto.id} {dto.doc_number}  (status={dto.status})")
    click.echo(f"Sales order:  {dto.sales_order_id}   Warehouse: {dto.warehouse_id}")
    click.echo(f"Customer:     {dto.customer_id}")
    click.echo(f"Delivery on:  {dto.delivery_date}")
    if dto.tracking_number:
        click.echo(f"Tracking:     {dto.tracking_number}")
    for label, value in (
        ("Created", dto.created_at),
        ("Confirmed", dto.confirmed_at),
        ("Shipped", dto.shipped_at),
        ("Delivered", dto.delivered_at),
        ("Cancelled", dto.cancelled_at),
    ):
        if value:
            click.echo(f"{label + ':':<13} {value}")
    if dto.cancellation_reason:
        click.echo(f"Reason:       {dto.cancellation_reason}")
    click.echo()

    click.echo(
        f"  {'SO line':>7} {'Product':>8} {'To deliver':>11} {'Committed':>10} "
        f"{'UOM':<6} {'Price':>10} {'Total':>12}"
    )
    click.echo(f"  {'-'*70}")
    for line in dto.lines:
        click.echo(
            f"  {line.sales_order_line_id:>7} {line.product_id:>8} "
            f"{_qty(line.quantity_to_deliver):>11} {_qty(line.quantity_delivered):>10} "
            f"{line.uom:<6} {line.unit_price:>10} {line.line_total:>12}"
        )
    click.echo(f"  {'-'*70}")
    click.echo(f"  {'Total':<27} {_qty(dto.total_quantity):>11} {dto.total:>30}")


@click.command("create")
@click.option("--company", "company_id", required=True, type=int, help="Company ID.")
@click.option("--sales-order", "sales_order_id", required=True, type=int, help="Sales order ID.")
@click.option("--warehouse", "warehouse_id", required=True, type=int, help="Warehouse ID.")
@click.option("--lines", required=True, help="Lines as 'LineId:ProductId:Qty,...'.")
@click.option("--date", "delivery_date", type=_DATE, default=None, help="Delivery date (default today).")
@click.option("--doc-number", default=None, help="Document number (generated when omitted).")
@click.option("--driver", default=None, help="Driver name.")
@click.option("--vehicle", default=None, help="Vehicle number.")
@click.option("--notes", default=None)
@click.option("--actor", "actor_id", type=int, default=None, help="Acting user ID.")
@click.pass_obj
def delivery_create(
    settings: Settings,
    company_id: int,
    sales_order_id: int,
    warehouse_id: int,
    lines: str,
    delivery_date: datetime | None,
    doc_number: str | None,
    driver: str | None,
    vehicle: str | None,
    notes: str | None,
    actor_id: int | None,
) -> None:
    """Create a DRAFT delivery order."""
    request = CreateDeliveryOrderInput(
        company_id=company_id,
        sales_order_id=sales_order_id,
        warehouse_id=warehouse_id,
        delivery_date=delivery_date.date() if delivery_date else date.today(),
        lines=_parse_lines(lines),
        created_by=actor_id,
        doc_number=doc_number,
        driver_name=driver,
        vehicle_number=vehicle,
        notes=notes,
    )
    handler = CreateDeliveryOrderHandler(unit_of_work(settings))

    try:
        dto = handler.handle(request)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} created  (status={dto.status})")


@click.command("update")
@click.option("--id", "delivery_order_id", required=True, type=int, help="Delivery order ID.")
@click.option("--lines", default=None, help="Replacement lines as 'LineId:ProductId:Qty,...'.")
@click.option("--date", "delivery_date", type=_DATE, default=None, help="New delivery date.")
@click.option("--driver", default=None, help="Driver name.")
@click.option("--vehicle", default=None, help="Vehicle number.")
@click.option("--tracking", default=None, help="Tracking number.")
@click.option("--notes", default=None)
@click.pass_obj
def delivery_update(
    settings: Settings,
    delivery_order_id: int,
    lines: str | None,
    delivery_date: datetime | None,
    driver: str | None,
    vehicle: str | None,
    tracking: str | None,
    notes: str | None,
) -> None:
    """Edit a DRAFT delivery order."""
    request = UpdateDeliveryOrderInput(
        delivery_order_id=delivery_order_id,
        delivery_date=delivery_date.date() if delivery_date else None,
        driver_name=driver,
        vehicle_number=vehicle,
        tracking_number=tracking,
        notes=notes,
        lines=_parse_lines(lines) if lines else None,
    )
    handler = UpdateDeliveryOrderHandler(unit_of_work(settings))

    try:
        dto = handler.handle(request)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} updated.")


@click.command("confirm")
@click.option("--id", "delivery_order_id", required=True, type=int, help="Delivery order ID.")
@click.option("--actor", "actor_id", type=int, default=None, help="Acting user ID.")
@click.pass_obj
def delivery_confirm(settings: Settings, delivery_order_id: int, actor_id: int | None) -> None:
    """Confirm a draft delivery order (reserves sales order quantities)."""
    handler = ConfirmDeliveryOrderHandler(unit_of_work(settings))

    try:
        dto = handler.handle(delivery_order_id, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} confirmed.")


@click.command("ship")
@click.option("--id", "delivery_order_id", required=True, type=int, help="Delivery order ID.")
@click.option("--tracking", default=None, help="Tracking number.")
@click.option("--actor", "actor_id", type=int, default=None, help="Acting user ID.")
@click.pass_obj
def delivery_ship(
    settings: Settings,
    delivery_order_id: int,
    tracking: str | None,
    actor_id: int | None,
) -> None:
    """Mark a confirmed delivery order as in transit."""
    handler = MarkInTransitHandler(unit_of_work(settings))

    try:
        dto = handler.handle(delivery_order_id, tracking_number=tracking, actor_id=actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} in transit.")


@click.command("deliver")
@click.option("--id", "delivery_order_id", required=True, type=int, help="Delivery order ID.")
@click.option("--at", "delivered_at", type=_TIMESTAMP, default=None, help="Delivery time in UTC (default now).")
@click.option("--actor", "actor_id", type=int, default=None, help="Acting user ID.")
@click.pass_obj
def delivery_deliver(
    settings: Settings,
    delivery_order_id: int,
    delivered_at: datetime | None,
    actor_id: int | None,
) -> None:
    """Mark an in-transit delivery order as delivered (moves stock)."""
    uow = unit_of_work(settings)
    handler = MarkDeliveredHandler(uow, inventory_adapter(uow, settings))
    when = (
        delivered_at.replace(tzinfo=timezone.utc)
        if delivered_at
        else datetime.now(timezone.utc)
    )

    try:
        dto = handler.handle(delivery_order_id, when, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} delivered.")


@click.command("cancel")
@click.option("--id", "delivery_order_id", required=True, type=int, help="Delivery order ID.")
@click.option("--reason", required=True, help="Why the order is cancelled (10-500 characters).")
@click.option("--actor", "actor_id", type=int, default=None, help="Acting user ID.")
@click.pass_obj
def delivery_cancel(
    settings: Settings, delivery_order_id: int, reason: str, actor_id: int | None
) -> None:
    """Cancel a delivery order (releases reserved quantities)."""
    handler = CancelDeliveryOrderHandler(unit_of_work(settings))

    try:
        dto = handler.handle(delivery_order_id, reason, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Delivery order #{dto.id} {dto.doc_number} cancelled.")


@click.command("show")
@click.option("--id", "delivery_order_id", type=int, default=None, help="Delivery order ID.")
@click.option("--doc", "doc_number", default=None, help="Document number (needs --company).")
@click.option("--company", "company_id", type=int, default=None, help="Company ID.")
@click.pass_obj
def delivery_show(
    settings: Settings,
    delivery_order_id: int | None,
    doc_number: str | None,
    company_id: int | None,
) -> None:
    """Show details of a delivery order, by ID or by document number."""
    if (delivery_order_id is None) == (doc_number is None):
        raise click.UsageError("Pass exactly one of --id or --doc.")
    if doc_number is not None and company_id is None:
        raise click.UsageError("--doc needs --company.")
    handler = ShowDeliveryOrderHandler(unit_of_work(settings))

    try:
        if doc_number is not None:
            dto = handler.by_doc_number(company_id, doc_number)
        else:
            dto = handler.handle(delivery_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("list")
@click.option("--company", "company_id", required=True, type=int, help="Company ID.")
@click.option("--sales-order", "sales_order_id", type=int, default=None, help="Sales order ID.")
@click.option("--warehouse", "warehouse_id", type=int, default=None, help="Warehouse ID.")
@click.option("--customer", "customer_id", type=int, default=None, help="Customer ID.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in DeliveryOrderStatus], case_sensitive=False),
    default=None,
)
@click.option("--from", "date_from", type=_DATE, default=None, help="Earliest delivery date.")
@click.option("--to", "date_to", type=_DATE, default=None, help="Latest delivery date.")
@click.option("--search", default=None, help="Match doc number, driver or tracking number.")
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_obj
def delivery_list(
    settings: Settings,
    company_id: int,
    sales_order_id: int | None,
    warehouse_id: int | None,
    customer_id: int | None,
    status: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
    search: str | None,
    limit: int,
    offset: int,
) -> None:
    """List a company's delivery orders, newest delivery date first."""
    request = ListDeliveryOrdersInput(
        company_id=company_id,
        sales_order_id=sales_order_id,
        warehouse_id=warehouse_id,
        customer_id=customer_id,
        status=status,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        search=search,
        limit=limit,
        offset=offset,
    )
    handler = ListDeliveryOrdersHandler(unit_of_work(settings))

    try:
        page = handler.handle(request)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not page.orders:
        click.echo("No delivery orders found.")
        return

    click.echo(
        f"  {'ID':>5} {'Document':<18} {'Status':<11} {'Date':<10} "
        f"{'SO':>6} {'Qty':>10} {'Total':>12}"
    )
    click.echo(f"  {'-'*78}")
    for dto in page.orders:
        click.echo(
            f"  {dto.id:>5} {dto.doc_number:<18} {dto.status:<11} {dto.delivery_date:<10} "
            f"{dto.sales_order_id:>6} {_qty(dto.total_quantity):>10} {dto.total:>12}"
        )
    shown_to = page.offset + len(page.orders)
    click.echo(f"\n  {page.offset + 1}-{shown_to} of {page.total}")
