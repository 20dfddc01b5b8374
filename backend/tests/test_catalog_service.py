"""
Catalog maintenance tests: create, update, soft delete, lookups.
"""

import pytest

from stockseguro.extensions import db
from stockseguro.models import Product, StockMovement
from stockseguro.services import catalog_service, seed_service
from stockseguro.validation import ConflictError, NotFoundError, ValidationError


def _patch(**overrides):
    patch = {
        "id": "7701",
        "barcode": "7701",
        "name": "Ron Viejo 750ml",
        "category": "Licores",
        "unit_price_cents": 35000,
        "box_price_cents": 350000,
        "stock": 0,
        "min_stock": 5,
    }
    patch.update(overrides)
    return patch


class TestCreateProduct:

    def test_create_defaults(self, db_session):
        created = catalog_service.create_product(patch=_patch())

        assert created["id"] == "7701"
        assert created["is_active"] is True
        assert created["image"] == "📦"
        assert created["stock"] == 0
        assert created["created_at"].endswith("Z")

    def test_initial_stock_is_logged(self, worker):
        catalog_service.create_product(patch=_patch(stock=24), worker_id=worker.id)

        movement = db.session.query(StockMovement).one()
        assert movement.operation == "add"
        assert movement.quantity == 24
        assert movement.reason == catalog_service.INITIAL_STOCK_REASON

    def test_duplicate_id_rejected(self, db_session):
        catalog_service.create_product(patch=_patch())
        with pytest.raises(ConflictError):
            catalog_service.create_product(patch=_patch(barcode="other"))

    def test_duplicate_barcode_rejected_even_if_inactive(self, product_factory):
        product_factory("OLD", barcode="7701", is_active=False)
        with pytest.raises(ConflictError):
            catalog_service.create_product(patch=_patch())

    def test_missing_required_field(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product(patch=_patch(name=""))

    def test_insert_race_becomes_conflict(self, product_factory, monkeypatch):
        product_factory("OLD", barcode="7701")
        # Pre-check misses the row, as if it was committed right after
        monkeypatch.setattr(catalog_service, "exists", lambda **kwargs: False)

        with pytest.raises(ConflictError):
            catalog_service.create_product(patch=_patch())

        # Session was rolled back and is still usable
        assert db.session.query(Product).count() == 1
        assert db.session.query(StockMovement).count() == 0


class TestUpdateProduct:

    def test_update_fields(self, product_factory):
        product_factory("A", unit_price_cents=1000)

        updated = catalog_service.update_product(
            product_id="A",
            patch={"name": "Renamed", "unit_price_cents": 1300},
        )

        assert updated["name"] == "Renamed"
        assert updated["unit_price_cents"] == 1300

    def test_stock_is_not_patchable(self, product_factory):
        product_factory("A", stock=7)

        updated = catalog_service.update_product(product_id="A", patch={"stock": 99})

        assert updated["stock"] == 7

    def test_barcode_clash(self, product_factory):
        product_factory("A", barcode="111")
        product_factory("B", barcode="222")

        with pytest.raises(ConflictError):
            catalog_service.update_product(product_id="B", patch={"barcode": "111"})

    def test_barcode_race_becomes_conflict(self, product_factory, monkeypatch):
        product_factory("A", barcode="111")
        real_apply = catalog_service.apply_product_patch

        def apply_after_rival_insert(product, patch, fields):
            # Another writer takes the barcode between the check and the commit
            db.session.add(Product(
                id="RIVAL", barcode="999", name="Rival", category="Cervezas",
                unit_price_cents=1000, box_price_cents=0, stock=0, min_stock=0, is_active=True,
            ))
            real_apply(product, patch, fields)

        monkeypatch.setattr(catalog_service, "apply_product_patch", apply_after_rival_insert)

        with pytest.raises(ConflictError):
            catalog_service.update_product(product_id="A", patch={"barcode": "999"})

        assert db.session.get(Product, "A").barcode == "111"
        assert db.session.get(Product, "RIVAL") is None

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.update_product(product_id="missing", patch={"name": "x"})

    def test_reactivate(self, product_factory):
        product_factory("A", is_active=False)

        updated = catalog_service.update_product(product_id="A", patch={"is_active": True})

        assert updated["is_active"] is True
        assert catalog_service.find_active_by_id("A") is not None


class TestSoftDelete:

    def test_soft_delete_hides_product(self, product_factory):
        product_factory("A")

        catalog_service.soft_delete_product(product_id="A")

        assert catalog_service.find_active_by_id("A") is None
        assert db.session.get(Product, "A").is_active is False
        assert [p["id"] for p in catalog_service.list_active_products()] == []

    def test_soft_delete_is_idempotent(self, product_factory):
        product_factory("A")

        first = catalog_service.soft_delete_product(product_id="A")
        second = catalog_service.soft_delete_product(product_id="A")

        assert first["is_active"] is False
        assert second["is_active"] is False

    def test_soft_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.soft_delete_product(product_id="missing")


class TestLookups:

    def test_lookup_by_barcode_then_id(self, product_factory):
        product_factory("A", barcode="9999")

        assert catalog_service.find_active_by_code("9999").id == "A"
        assert catalog_service.find_active_by_code(" A ").id == "A"
        assert catalog_service.find_active_by_code("nope") is None

    def test_list_active_ordered_by_category_then_name(self, product_factory):
        product_factory("A", name="Zeta", category="Vinos")
        product_factory("B", name="Alfa", category="Cervezas")
        product_factory("C", name="Beta", category="Cervezas")
        product_factory("D", name="Gone", category="Cervezas", is_active=False)

        ids = [p["id"] for p in catalog_service.list_active_products()]

        assert ids == ["B", "C", "A"]

    def test_low_stock(self, product_factory):
        product_factory("A", stock=0, min_stock=3)
        product_factory("B", stock=3, min_stock=3)
        product_factory("C", stock=10, min_stock=3)

        items = catalog_service.list_low_stock_products()

        assert [p["id"] for p in items] == ["A", "B"]
        assert items[0]["is_out_of_stock"] is True
        assert items[1]["is_out_of_stock"] is False


class TestConditionalStockUpdate:

    def test_refuses_negative_stock(self, product_factory):
        product_factory("A", stock=2)

        assert catalog_service.conditional_adjust_stock("A", -3) == 0
        assert catalog_service.conditional_adjust_stock("A", -2) == 1
        db.session.commit()

        assert catalog_service.read_stock("A") == 0

    def test_refuses_inactive_unless_asked(self, product_factory):
        product_factory("A", stock=2, is_active=False)

        assert catalog_service.conditional_adjust_stock("A", 1) == 0
        assert catalog_service.conditional_adjust_stock("A", 1, require_active=False) == 1
        db.session.commit()


class TestSeed:

    def test_seed_catalog_once(self, db_session):
        inserted = seed_service.seed_catalog_if_needed()

        assert inserted == len(seed_service.DEMO_CATALOG)
        assert seed_service.seed_catalog_if_needed() == 0

    def test_replace_catalog_soft(self, product_factory):
        product_factory("LEGACY")

        upserted, deactivated = seed_service.replace_catalog_soft()

        assert upserted == len(seed_service.DEMO_CATALOG)
        assert deactivated == 1
        assert db.session.get(Product, "LEGACY").is_active is False

    def test_demo_worker_only_when_empty(self, db_session):
        assert seed_service.seed_demo_worker_if_needed() is not None
        assert seed_service.seed_demo_worker_if_needed() is None
