"""CLI commands for sales orders."""

from __future__ import annotations

import click

from fulfillment.application.list_deliverable_lines import ListDeliverableLinesHandler
from fulfillment.domain.exceptions import DomainException
from fulfillment.infrastructure.bootstrap import unit_of_work
from fulfillment.infrastructure.config import Settings


@click.command("deliverable")
@click.option("--id", "sales_order_id", required=True, type=int, help="Sales order ID.")
@click.pass_obj
def sales_order_deliverable(settings: Settings, sales_order_id: int) -> None:
    """List the lines of a sales order that can still be delivered."""
    handler = ListDeliverableLinesHandler(unit_of_work(settings))

    try:
        dto = handler.handle(sales_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sales order {dto.sales_order_number}  (customer={dto.customer_id})")
    if not dto.lines:
        click.echo("Nothing left to deliver.")
        return

    click.echo()
    click.echo(
        f"  {'Line':>6} {'Product':>8} {'Ordered':>10} {'Delivered':>10} "
        f"{'Remaining':>10} {'UOM':<6} {'Price':>10}"
    )
    click.echo(f"  {'-'*66}")
    for line in dto.lines:
        click.echo(
            f"  {line.sales_order_line_id:>6} {line.product_id:>8} "
            f"{line.quantity:>10} {line.quantity_delivered:>10} "
            f"{line.remaining_quantity:>10} {line.uom:<6} {line.unit_price:>10}"
        )
