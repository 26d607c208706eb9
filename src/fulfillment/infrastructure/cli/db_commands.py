"""CLI commands for the database schema."""

from __future__ import annotations

import click

from fulfillment.infrastructure.bootstrap import engine
from fulfillment.infrastructure.config import Settings
from fulfillment.infrastructure.persistence.database import create_schema


@click.command("init")
@click.pass_obj
def db_init(settings: Settings) -> None:
    """Create any missing tables."""
    create_schema(engine(settings))
    click.echo("Database schema is up to date.")
