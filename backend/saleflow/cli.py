# Overview: Flask CLI command groups for bootstrap, stock and reconciliation.

# backend/saleflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "saleflow:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock ledger:
# - python -m flask stock set --tenant-id T --product-id P --quantity 25 [--location main]
#   Overwrite on-hand quantity (audited as an adjustment).
# - python -m flask stock adjust --tenant-id T --product-id P --delta -2 [--reason adjustment]
#   Apply a signed delta.
# - python -m flask stock show --tenant-id T --product-id P
#   Print on-hand quantity and recent movements.
#
# Reconciliation:
# - python -m flask reconciliation list --tenant-id T
#   List open flags for sales whose stock deduction failed.
# - python -m flask reconciliation resolve FLAG_ID --tenant-id T
#   Mark a flag as handled.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import reconciliation_service, stock_ledger
from .services.reconciliation_service import ReconciliationError
from .services.stock_ledger import StockLedgerError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('stock')
def stock_group():
    """Stock ledger commands."""


@stock_group.command('set')
@click.option('--tenant-id', required=True)
@click.option('--product-id', required=True)
@click.option('--quantity', type=int, required=True)
@click.option('--location', 'location_id', default=None, help='Location (default: configured main location)')
@with_appcontext
def stock_set(tenant_id, product_id, quantity, location_id):
    """Overwrite on-hand quantity."""
    try:
        movement = stock_ledger.set_absolute(product_id, tenant_id, location_id, quantity)
    except StockLedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {product_id}@{movement.location_id}: {movement.old_quantity} -> {movement.new_quantity}")


@stock_group.command('adjust')
@click.option('--tenant-id', required=True)
@click.option('--product-id', required=True)
@click.option('--delta', type=int, required=True)
@click.option('--reason', type=click.Choice(['restock', 'adjustment']), default='adjustment')
@click.option('--location', 'location_id', default=None)
@with_appcontext
def stock_adjust(tenant_id, product_id, delta, reason, location_id):
    """Apply a signed delta."""
    try:
        movement = stock_ledger.adjust(product_id, tenant_id, location_id, delta, reason=reason)
    except StockLedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {product_id}@{movement.location_id}: {movement.old_quantity} -> {movement.new_quantity}")


@stock_group.command('show')
@click.option('--tenant-id', required=True)
@click.option('--product-id', required=True)
@click.option('--limit', type=int, default=20)
@with_appcontext
def stock_show(tenant_id, product_id, limit):
    """Print on-hand quantity and recent movements."""
    quantity = stock_ledger.get_quantity(product_id, tenant_id)
    if quantity is None:
        raise click.ClickException("No stock record for product")
    click.echo(f"On hand: {quantity}")
    for m in stock_ledger.list_movements(product_id, tenant_id, limit=limit):
        click.echo(
            f"  {m.created_at}  {m.reason:<10} {m.quantity_change:+d}  "
            f"{m.old_quantity} -> {m.new_quantity}  {m.reference or ''}"
        )


@click.group('reconciliation')
def reconciliation_group():
    """Follow-up on sales whose side effects failed."""


@reconciliation_group.command('list')
@click.option('--tenant-id', required=True)
@with_appcontext
def reconciliation_list(tenant_id):
    flags = reconciliation_service.list_open_flags(tenant_id)
    if not flags:
        click.echo("No open flags")
        return
    for flag in flags:
        click.echo(f"{flag.id}  {flag.kind}  txn={flag.transaction_id}  {flag.detail}")


@reconciliation_group.command('resolve')
@click.argument('flag_id')
@click.option('--tenant-id', required=True)
@with_appcontext
def reconciliation_resolve(flag_id, tenant_id):
    try:
        reconciliation_service.resolve_flag(flag_id, tenant_id)
    except ReconciliationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Resolved {flag_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(reconciliation_group)
