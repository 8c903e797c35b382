# Overview: Flask CLI command groups for bootstrap, demo data, and inspection.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo [--date 2024-01-01]
#   Create the demo products and declare 100 kg of stock for each on the day.
#
# Stock inspection:
# - python -m flask stock show WHT
#   Print every stock entry for a product code, newest day first.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .services import products_service, stock_service
from .services.products_service import ProductNotFoundError

DEMO_PRODUCTS = (
    ("Wheat", "WHT"),
    ("Rice", "RCE"),
    ("Sugar", "SGR"),
)


@click.group('system')
def system_group():
    """System bootstrap and maintenance."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@click.option('--date', 'day', default=None, help='Stock day (YYYY-MM-DD, default today UTC)')
@click.option('--kg', default='100', help='Stock to declare per product')
@with_appcontext
def seed_demo(day, kg):
    """Idempotently create demo products and their stock for one day."""
    quantity = Decimal(kg)
    for name, code in DEMO_PRODUCTS:
        if products_service.get_product_by_code(code) is None:
            products_service.create_product(name=name, code=code)
            click.echo(f"   created product {code} ({name})")
        entry, created = stock_service.upsert_for_day(
            product_code=code,
            day=day,
            total_stock=quantity,
            remain_stock=quantity,
        )
        click.echo(f"   {'created' if created else 'reset'} stock {code} {entry.date.isoformat()} -> {quantity} kg")
    click.echo("PASS Demo data ready.")


@click.group('stock')
def stock_group():
    """Stock ledger inspection."""


@stock_group.command('show')
@click.argument('product_code')
@with_appcontext
def show_stock(product_code):
    """Print a product's stock entries, newest day first."""
    try:
        entries = stock_service.find_for_product(product_code)
    except ProductNotFoundError as exc:
        raise click.ClickException(str(exc))

    if not entries:
        click.echo(f"No stock entries for {product_code}.")
        return

    click.echo(f"{'DATE':<12}{'TOTAL':>12}{'REMAIN':>12}")
    for entry in entries:
        click.echo(f"{entry.date.isoformat():<12}{entry.total_stock:>12}{entry.remain_stock:>12}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
