"""
Sale engine tests.

Verifies:
- A valid cart decrements stock and writes Sale, SaleLine and StockMovement rows
- Rejected carts leave the store untouched
- Prices always come from the catalog
- A stock decrement that loses a race aborts the whole sale
"""

import pytest

from stockseguro.extensions import db
from stockseguro.models import Sale, SaleLine, StockMovement
from stockseguro.services import catalog_service, sales_service
from stockseguro.services.concurrency import ConcurrencyError
from stockseguro.services.results import (
    CODE_VALIDATION,
    CODE_NOT_FOUND,
    CODE_BUSINESS_RULE,
)


def _counts():
    return (
        db.session.query(Sale).count(),
        db.session.query(SaleLine).count(),
        db.session.query(StockMovement).count(),
    )


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestCompleteSale:

    def test_single_line_sale(self, worker, product_factory):
        product_factory("A", unit_price_cents=1000, stock=10)

        result = sales_service.complete_sale(
            worker_id=worker.id,
            payment_method="cash",
            received_amount=None,
            items=[{"productId": "A", "quantity": 3}],
        )

        assert result.ok, result.error
        assert result.data["total"] == 3000
        assert "change" not in result.data
        assert catalog_service.read_stock("A") == 7

        sale = db.session.get(Sale, result.data["saleId"])
        assert sale.total_cents == 3000
        assert sale.worker_id == worker.id
        assert sale.payment_method == "cash"

        lines = db.session.query(SaleLine).filter_by(sale_id=sale.id).all()
        assert len(lines) == 1
        assert lines[0].unit_price_cents == 1000
        assert lines[0].subtotal_cents == 3000

        movement = db.session.query(StockMovement).one()
        assert movement.operation == "subtract"
        assert movement.quantity == 3
        assert movement.reason == f"sale:{sale.id}"
        assert movement.sale_id == sale.id
        assert movement.cause == "sale"
        assert movement.worker_id == worker.id

    def test_multi_line_sale_logs_one_movement_per_line(self, worker, product_factory):
        product_factory("A", unit_price_cents=2500, stock=5)
        product_factory("B", unit_price_cents=4000, stock=2)

        result = sales_service.complete_sale(
            worker_id=worker.id,
            payment_method="card",
            received_amount=None,
            items=[{"productId": "A", "quantity": 2}, {"productId": "B", "quantity": 1}],
        )

        assert result.ok, result.error
        assert result.data["total"] == 9000
        assert catalog_service.read_stock("A") == 3
        assert catalog_service.read_stock("B") == 1
        assert _counts() == (1, 2, 2)

    def test_cash_sale_returns_change(self, worker, product_factory):
        product_factory("A", unit_price_cents=2500, stock=5)

        result = sales_service.complete_sale(
            worker_id=worker.id,
            payment_method="efectivo",
            received_amount=10000,
            items=[{"productId": "A", "quantity": 2}],
        )

        assert result.ok
        assert result.data["total"] == 5000
        assert result.data["change"] == 5000

    def test_short_cash_payment_is_stored_as_given(self, worker, product_factory):
        product_factory("A", unit_price_cents=5000, stock=3)

        result = sales_service.complete_sale(worker.id, "efectivo", 4000, [{"productId": "A", "quantity": 1}])

        assert result.ok, result.error
        assert result.data["total"] == 5000
        assert result.data["change"] == 0
        assert catalog_service.read_stock("A") == 2

        sale = db.session.get(Sale, result.data["saleId"])
        assert sale.received_amount_cents == 4000
        assert sale.total_cents == 5000

    def test_card_sale_with_zero_received(self, worker, product_factory):
        product_factory("A", unit_price_cents=5000, stock=3)

        result = sales_service.complete_sale(worker.id, "card", 0, [{"productId": "A", "quantity": 1}])

        assert result.ok
        assert result.data["change"] == 0

    def test_whole_float_quantity_is_accepted(self, worker, product_factory):
        product_factory("A", stock=5)

        result = sales_service.complete_sale(worker.id, "cash", None, [{"productId": "A", "quantity": 2.0}])

        assert result.ok
        assert catalog_service.read_stock("A") == 3

    def test_client_price_is_ignored(self, worker, product_factory):
        product_factory("A", unit_price_cents=1000, stock=5)

        result = sales_service.complete_sale(
            worker.id, "cash", None,
            [{"productId": "A", "quantity": 1, "price": 1, "unitPrice": 1}],
        )

        assert result.ok
        assert result.data["total"] == 1000

    def test_get_sale_includes_lines(self, worker, product_factory):
        product_factory("A", unit_price_cents=1200, stock=5, name="Pilsner")
        result = sales_service.complete_sale(worker.id, "cash", None, [{"productId": "A", "quantity": 2}])

        sale = sales_service.get_sale(result.data["saleId"])

        assert sale["total_cents"] == 2400
        assert sale["worker_name"] == worker.name
        assert sale["lines"][0]["product_name"] == "Pilsner"
        assert sales_service.get_sale(99999) is None


# =============================================================================
# REJECTIONS LEAVE NO TRACE
# =============================================================================


class TestRejectedSale:

    def test_insufficient_stock(self, worker, product_factory):
        product_factory("A", stock=2)

        result = sales_service.complete_sale(worker.id, "cash", None, [{"productId": "A", "quantity": 5}])

        assert not result.ok
        assert result.code == CODE_BUSINESS_RULE
        assert "Insufficient stock for A" in result.error
        assert result.details["available"] == 2
        assert catalog_service.read_stock("A") == 2
        assert _counts() == (0, 0, 0)

    def test_duplicate_lines_are_checked_together(self, worker, product_factory):
        product_factory("A", stock=3)

        result = sales_service.complete_sale(
            worker.id, "cash", None,
            [{"productId": "A", "quantity": 2}, {"productId": "A", "quantity": 2}],
        )

        assert not result.ok
        assert result.code == CODE_BUSINESS_RULE
        assert catalog_service.read_stock("A") == 3
        assert _counts() == (0, 0, 0)

    def test_unknown_product(self, worker, product_factory):
        product_factory("A", stock=3)

        result = sales_service.complete_sale(
            worker.id, "cash", None,
            [{"productId": "A", "quantity": 1}, {"productId": "NOPE", "quantity": 1}],
        )

        assert not result.ok
        assert result.code == CODE_NOT_FOUND
        assert result.error == "Product not found: NOPE"
        assert catalog_service.read_stock("A") == 3
        assert _counts() == (0, 0, 0)

    def test_inactive_product_cannot_be_sold(self, worker, product_factory):
        product_factory("A", stock=3, is_active=False)

        result = sales_service.complete_sale(worker.id, "cash", None, [{"productId": "A", "quantity": 1}])

        assert not result.ok
        assert result.code == CODE_NOT_FOUND

    @pytest.mark.parametrize(
        "items,message",
        [
            ([], "Cart is empty."),
            (None, "Cart is empty."),
            (["A"], "Invalid item in cart."),
            ([{"quantity": 1}], "Invalid item in cart."),
            ([{"productId": "A", "quantity": 0}], "Invalid quantity for A."),
            ([{"productId": "A", "quantity": -1}], "Invalid quantity for A."),
            ([{"productId": "A", "quantity": 1.5}], "Invalid quantity for A."),
            ([{"productId": "A", "quantity": float("nan")}], "Invalid quantity for A."),
            ([{"productId": "A", "quantity": True}], "Invalid quantity for A."),
            ([{"productId": "A", "quantity": "abc"}], "Invalid quantity for A."),
        ],
    )
    def test_invalid_cart(self, worker, product_factory, items, message):
        product_factory("A", stock=3)

        result = sales_service.complete_sale(worker.id, "cash", None, items)

        assert not result.ok
        assert result.code == CODE_VALIDATION
        assert result.error == message
        assert catalog_service.read_stock("A") == 3

    @pytest.mark.parametrize("method", [None, "", "   "])
    def test_missing_payment_method(self, worker, product_factory, method):
        product_factory("A", stock=3)

        result = sales_service.complete_sale(worker.id, method, None, [{"productId": "A", "quantity": 1}])

        assert result.error == "Invalid payment method."
        assert result.code == CODE_VALIDATION

    @pytest.mark.parametrize("worker_id", [None, 0, -3, "abc", True])
    def test_invalid_worker_id(self, db_session, product_factory, worker_id):
        product_factory("A", stock=3)

        result = sales_service.complete_sale(worker_id, "cash", None, [{"productId": "A", "quantity": 1}])

        assert result.error == "Invalid worker."
        assert result.code == CODE_VALIDATION

    def test_unknown_or_inactive_worker(self, worker, product_factory):
        product_factory("A", stock=3)
        worker.is_active = False
        db.session.commit()

        result = sales_service.complete_sale(worker.id, "cash", None, [{"productId": "A", "quantity": 1}])

        assert result.error == "Invalid worker."
        assert catalog_service.read_stock("A") == 3
        assert _counts() == (0, 0, 0)

    def test_rejection_is_idempotent(self, worker, product_factory):
        product_factory("A", stock=1)
        items = [{"productId": "A", "quantity": 2}]

        first = sales_service.complete_sale(worker.id, "cash", None, items)
        second = sales_service.complete_sale(worker.id, "cash", None, items)

        assert first.to_dict() == second.to_dict()
        assert catalog_service.read_stock("A") == 1
        assert _counts() == (0, 0, 0)


# =============================================================================
# COMMIT PHASE: NOTHING FROM VALIDATION IS TRUSTED
# =============================================================================


class TestCommitPhase:

    def _request(self, worker, items, method="card", received=None):
        return sales_service.parse_sale_request(worker.id, method, received, items)

    def test_lost_race_for_last_unit(self, worker, product_factory):
        """Two carts priced against the same last unit: only one commits."""
        product_factory("A", stock=1)
        req_a = self._request(worker, [{"productId": "A", "quantity": 1}])
        req_b = self._request(worker, [{"productId": "A", "quantity": 1}])

        total_a = sales_service.validate_and_price_cart(req_a)
        total_b = sales_service.validate_and_price_cart(req_b)

        sales_service.commit_sale(req_a, total_a)
        with pytest.raises(ConcurrencyError):
            sales_service.commit_sale(req_b, total_b)
        db.session.rollback()

        assert catalog_service.read_stock("A") == 0
        assert _counts() == (1, 1, 1)

    def test_failed_line_rolls_back_earlier_lines(self, worker, product_factory):
        product_factory("A", stock=5)
        product_factory("B", stock=1)
        req = self._request(worker, [{"productId": "A", "quantity": 2}, {"productId": "B", "quantity": 1}])
        total = sales_service.validate_and_price_cart(req)

        # B sells out between validation and commit
        assert catalog_service.conditional_adjust_stock("B", -1) == 1
        db.session.commit()

        with pytest.raises(ConcurrencyError):
            sales_service.commit_sale(req, total)
        db.session.rollback()

        assert catalog_service.read_stock("A") == 5
        assert catalog_service.read_stock("B") == 0
        assert _counts() == (0, 0, 0)

    def test_deactivated_between_phases(self, worker, product_factory):
        product = product_factory("A", stock=5)
        req = self._request(worker, [{"productId": "A", "quantity": 1}])
        total = sales_service.validate_and_price_cart(req)

        product.is_active = False
        db.session.commit()

        with pytest.raises(ConcurrencyError):
            sales_service.commit_sale(req, total)
        db.session.rollback()

        assert catalog_service.read_stock("A") == 5
        assert _counts() == (0, 0, 0)

    def test_price_change_between_phases_keeps_total_consistent(self, worker, product_factory):
        product = product_factory("A", unit_price_cents=1000, stock=5)
        req = self._request(worker, [{"productId": "A", "quantity": 2}])
        total = sales_service.validate_and_price_cart(req)
        assert total == 2000

        product.unit_price_cents = 1500
        db.session.commit()

        sale = sales_service.commit_sale(req, total)

        line_sum = sum(line.subtotal_cents for line in sale.lines)
        assert sale.total_cents == line_sum == 3000
