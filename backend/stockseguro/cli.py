# Overview: Flask CLI command groups for bootstrap, seeding, and inspection.

# backend/stockseguro/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent: create tables, demo worker and demo catalog when empty.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Workers:
# - python -m flask workers list
# - python -m flask workers create --rut 11.111.111-1 --name "Ana" --email ana@store.cl --pin 4321
# - python -m flask workers deactivate --email ana@store.cl
#
# Catalog:
# - python -m flask catalog seed [--replace]
#   Insert the demo catalog when empty; --replace soft-swaps the active catalog.
# - python -m flask catalog low-stock
#   List active products at or below their minimum stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Worker
from .services import auth_service, catalog_service, seed_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed the demo worker and catalog when empty."""
    click.echo("START Initializing StockSeguro...")
    db.create_all()
    click.echo("PASS Tables ready")

    worker = seed_service.seed_demo_worker_if_needed()
    if worker:
        demo = seed_service.DEMO_WORKER
        click.echo(f"PASS Demo worker created: {worker.name}")
        click.echo(f"   EMAIL: {demo['email']}")
        click.echo(f"   PIN:   {demo['pin']}")
        click.echo(f"   RUT:   {demo['rut']}")
    else:
        click.echo("WARN  Workers already exist, skipping demo worker")

    inserted = seed_service.seed_catalog_if_needed()
    if inserted:
        click.echo(f"PASS Seeded catalog: {inserted} products")
    else:
        click.echo("WARN  Catalog not empty, skipping seed")

    click.echo("DONE")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('workers')
def workers_group():
    """Worker account commands."""


@workers_group.command('list')
@with_appcontext
def list_workers():
    workers = db.session.query(Worker).order_by(Worker.id.asc()).all()
    if not workers:
        click.echo("No workers found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'RUT':<16} {'Name':<25} {'Email':<26} {'Active'}")
    click.echo("=" * 80)
    for w in workers:
        click.echo(f"{w.id:<5} {w.rut:<16} {w.name:<25} {w.email:<26} {'yes' if w.is_active else 'no'}")
    click.echo("=" * 80 + "\n")


@workers_group.command('create')
@click.option('--rut', prompt=True, help='National id (unique)')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email (unique)')
@click.option('--pin', prompt=True, hide_input=True, confirmation_prompt=True, help='4-12 digit PIN')
@with_appcontext
def create_worker_cli(rut, name, email, pin):
    try:
        worker = auth_service.create_worker(rut=rut, name=name, email=email, pin=pin)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created worker: {worker.name} ({worker.email}) ID: {worker.id}")


@workers_group.command('deactivate')
@click.option('--email', required=True, help='Worker email')
@with_appcontext
def deactivate_worker_cli(email):
    worker = (
        db.session.query(Worker)
        .filter(db.func.lower(Worker.email) == auth_service.normalize_email(email))
        .first()
    )
    if worker is None:
        click.echo(f"FAIL No worker with email {email}")
        raise SystemExit(1)
    auth_service.set_worker_active(worker.id, False)
    click.echo(f"PASS Deactivated worker {worker.email}")


@click.group('catalog')
def catalog_group():
    """Catalog seeding and inspection commands."""


@catalog_group.command('seed')
@click.option('--replace', is_flag=True, help='Deactivate products outside the demo catalog and upsert it')
@with_appcontext
def seed_catalog(replace):
    if replace:
        upserted, deactivated = seed_service.replace_catalog_soft()
        click.echo(f"PASS Catalog replaced: {upserted} upserted, {deactivated} deactivated")
        return

    inserted = seed_service.seed_catalog_if_needed()
    if inserted:
        click.echo(f"PASS Seeded catalog: {inserted} products")
    else:
        click.echo("WARN  Catalog not empty, nothing inserted (use --replace)")


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    items = catalog_service.list_low_stock_products()
    if not items:
        click.echo("PASS No products at or below minimum stock.")
        return
    for p in items:
        flag = "OUT " if p["is_out_of_stock"] else "LOW "
        click.echo(f"{flag} {p['id']:<16} {p['name']:<40} stock={p['stock']} min={p['min_stock']}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(workers_group)
    app.cli.add_command(catalog_group)
