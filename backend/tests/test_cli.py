"""
Flask CLI command tests.
"""

from stockseguro.extensions import db
from stockseguro.models import Product, Worker
from stockseguro.services import seed_service


def test_system_init_seeds_once(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "Demo worker created" in first.output
    assert f"Seeded catalog: {len(seed_service.DEMO_CATALOG)} products" in first.output
    assert "skipping" in second.output
    assert db.session.query(Worker).count() == 1
    assert db.session.query(Product).count() == len(seed_service.DEMO_CATALOG)


def test_reset_db_requires_confirmation(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])

    assert result.exit_code == 1
    assert "Refusing" in result.output


def test_worker_lifecycle(app, db_session):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        "workers", "create",
        "--rut", "33.333.333-3", "--name", "Ana", "--email", "Ana@Store.cl", "--pin", "5555",
    ])
    assert created.exit_code == 0, created.output

    duplicate = runner.invoke(args=[
        "workers", "create",
        "--rut", "33.333.333-3", "--name", "Ana", "--email", "other@store.cl", "--pin", "5555",
    ])
    assert duplicate.exit_code == 1

    listed = runner.invoke(args=["workers", "list"])
    assert "ana@store.cl" in listed.output

    deactivated = runner.invoke(args=["workers", "deactivate", "--email", "ANA@store.cl"])
    assert deactivated.exit_code == 0
    assert db.session.query(Worker).one().is_active is False


def test_low_stock_listing(app, product_factory):
    product_factory("EMPTY", stock=0, min_stock=2)
    product_factory("FULL", stock=50, min_stock=2)

    result = app.test_cli_runner().invoke(args=["catalog", "low-stock"])

    assert "OUT" in result.output
    assert "EMPTY" in result.output
    assert "FULL" not in result.output


def test_catalog_seed_replace(app, product_factory):
    product_factory("LEGACY")

    result = app.test_cli_runner().invoke(args=["catalog", "seed", "--replace"])

    assert result.exit_code == 0
    assert "1 deactivated" in result.output
