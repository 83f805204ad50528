# Overview: Flask CLI commands for database and stock bootstrap.

# backend/inventory_ledger/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP=inventory_ledger
# - Use: python -m flask ledger <command> [options]
#
# - python -m flask ledger init-db
#   Create all tables (idempotent).
# - python -m flask ledger seed-stock [--overwrite]
#   Write the opening stock record from the catalog. Without --overwrite an
#   existing record is left alone.

import click
from flask.cli import with_appcontext

from .catalog import DEFAULT_STOCK
from .extensions import db
from .ledger import get_ledger


@click.group('ledger')
def ledger_group():
    """Inventory ledger bootstrap commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all ledger tables."""
    db.create_all()
    click.echo("PASS Tables created")


@ledger_group.command('seed-stock')
@click.option('--overwrite', is_flag=True, help='Replace an existing stock record')
@with_appcontext
def seed_stock(overwrite):
    """Create the shared stock record from the catalog defaults."""
    created = get_ledger().store.initialize_stock(DEFAULT_STOCK, overwrite=overwrite)
    if created:
        click.echo(f"PASS Stock record written with {len(DEFAULT_STOCK)} items")
    else:
        click.echo("WARN  Stock record already exists, skipping (use --overwrite to replace)")


def register_commands(app):
    app.cli.add_command(ledger_group)
