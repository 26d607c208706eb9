import logging

import click

from fulfillment.infrastructure.cli.db_commands import db_init
from fulfillment.infrastructure.cli.delivery_commands import (
    delivery_cancel,
    delivery_confirm,
    delivery_create,
    delivery_deliver,
    delivery_list,
    delivery_ship,
    delivery_show,
    delivery_update,
)
from fulfillment.infrastructure.cli.sales_order_commands import sales_order_deliverable
from fulfillment.infrastructure.config import Settings


@click.group()
@click.option(
    "--database-url",
    envvar="FULFILLMENT_DATABASE_URL",
    default=None,
    help="SQLAlchemy database URL (overrides configuration).",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    """Fulfillment — delivery orders against sales order lines"""
    settings = Settings()
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


@cli.group()
def db() -> None:
    """Manage the database schema."""


@cli.group()
def delivery() -> None:
    """Manage delivery orders."""


@cli.group("sales-order")
def sales_order() -> None:
    """Inspect sales orders."""


# Register subcommands
db.add_command(db_init)
delivery.add_command(delivery_create)
delivery.add_command(delivery_update)
delivery.add_command(delivery_confirm)
delivery.add_command(delivery_ship)
delivery.add_command(delivery_deliver)
delivery.add_command(delivery_cancel)
delivery.add_command(delivery_show)
delivery.add_command(delivery_list)
sales_order.add_command(sales_order_deliverable)
