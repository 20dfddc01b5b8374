"""
Sales Service - sale completion transaction

Two phases, both reading truth from the store:

1. Validation/pricing (read-only): every cart line must name an active
   product with enough stock; the total is computed from catalog prices.
   Client-supplied prices are never read.
2. Commit (one atomic transaction): insert the Sale, then per cart line
   re-read the unit price, insert the SaleLine snapshot, conditionally
   decrement stock and log a "subtract" StockMovement with reason
   "sale:<id>". A zero-row stock update aborts the whole transaction.

Either every row commits or none does.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Sale
from ..models.inventory import OPERATION_SUBTRACT, sale_reason
from ..time_utils import utcnow
from ..validation import (
    ValidationError,
    NotFoundError,
    clean_text,
    parse_optional_cents,
    parse_positive_quantity,
)
from . import catalog_service, ledger_service
from .auth_service import get_active_worker
from .concurrency import ConcurrencyError, begin_immediate, run_with_retry
from .results import (
    OperationResult,
    CODE_VALIDATION,
    CODE_NOT_FOUND,
    CODE_BUSINESS_RULE,
    CODE_CONCURRENCY,
    CODE_INTERNAL,
)

MAX_PAYMENT_METHOD_LENGTH = 32
MAX_CART_LINES = 200

INTERNAL_SALE_ERROR = "Internal error completing the sale."


class SaleError(Exception):
    """Raised for sale business-rule errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class SaleRequest:
    worker_id: int
    payment_method: str
    received_amount_cents: int | None
    lines: tuple[CartLine, ...]


def parse_sale_request(worker_id, payment_method, received_amount, items) -> SaleRequest:
    """
    Input validation; touches no store.

    Raises ValidationError with the message shown to the cashier.
    """
    if not worker_id or isinstance(worker_id, bool):
        raise ValidationError("Invalid worker.")
    try:
        worker_id = int(worker_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid worker.")
    if worker_id <= 0:
        raise ValidationError("Invalid worker.")

    payment_method = clean_text(payment_method)
    if not payment_method:
        raise ValidationError("Invalid payment method.")
    if len(payment_method) > MAX_PAYMENT_METHOD_LENGTH:
        raise ValidationError(f"Payment method cannot exceed {MAX_PAYMENT_METHOD_LENGTH} characters.")

    received_amount_cents = parse_optional_cents(received_amount, field="receivedAmount")

    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("Cart is empty.")
    if len(items) > MAX_CART_LINES:
        raise ValidationError(f"Cart cannot have more than {MAX_CART_LINES} lines.")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Invalid item in cart.")
        product_id = clean_text(item.get("productId", item.get("product_id")))
        if not product_id:
            raise ValidationError("Invalid item in cart.")
        try:
            quantity = parse_positive_quantity(item.get("quantity"))
        except ValidationError:
            raise ValidationError(f"Invalid quantity for {product_id}.")
        lines.append(CartLine(product_id=product_id, quantity=quantity))

    return SaleRequest(
        worker_id=worker_id,
        payment_method=payment_method,
        received_amount_cents=received_amount_cents,
        lines=tuple(lines),
    )


def _requested_by_product(lines) -> dict[str, int]:
    requested: dict[str, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
    return requested


def validate_and_price_cart(req: SaleRequest) -> int:
    """
    Phase 1: read-only validation against live inventory.

    Stock is checked against the aggregate quantity per product, so a
    cart listing the same product twice cannot oversell it.
    Returns the total in minor units.
    """
    if get_active_worker(req.worker_id) is None:
        raise ValidationError("Invalid worker.")

    requested = _requested_by_product(req.lines)
    products = {}
    for product_id, quantity in requested.items():
        product = catalog_service.find_active_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        if product.stock < quantity:
            raise SaleError(
                f"Insufficient stock for {product_id} (available {product.stock}).",
                details={
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "available": product.stock,
                },
            )
        products[product_id] = product

    total = sum(products[line.product_id].unit_price_cents * line.quantity for line in req.lines)
    return total


def commit_sale(req: SaleRequest, priced_total: int) -> Sale:
    """
    Phase 2: write the sale atomically.

    Nothing read in phase 1 is trusted here: prices are re-read and every
    stock decrement is conditional. On any failure the transaction is
    rolled back by the caller.
    """
    begin_immediate()
    now = utcnow()

    sale = ledger_service.insert_sale(
        worker_id=req.worker_id,
        total_cents=priced_total,
        payment_method=req.payment_method,
        received_amount_cents=req.received_amount_cents,
        created_at=now,
    )

    total = 0
    for line in req.lines:
        unit_price = catalog_service.read_unit_price(line.product_id)
        if unit_price is None:
            raise ConcurrencyError(
                f"Product {line.product_id} was deactivated during the sale.",
                details={"product_id": line.product_id},
            )

        ledger_service.insert_sale_line(
            sale_id=sale.id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_cents=unit_price,
        )
        total += unit_price * line.quantity

        # Stock guard: only decrements while still active and sufficient
        affected = catalog_service.conditional_adjust_stock(line.product_id, -line.quantity)
        if affected == 0:
            raise ConcurrencyError(
                f"Could not decrement stock for {line.product_id}.",
                details={"product_id": line.product_id, "quantity": line.quantity},
            )

        ledger_service.insert_stock_movement(
            product_id=line.product_id,
            worker_id=req.worker_id,
            operation=OPERATION_SUBTRACT,
            quantity=line.quantity,
            reason=sale_reason(sale.id),
            sale_id=sale.id,
            created_at=now,
        )

    if total != priced_total:
        current_app.logger.info(
            "Sale %s repriced at commit: %s -> %s", sale.id, priced_total, total
        )
    sale.total_cents = total

    db.session.commit()
    return sale


def complete_sale(worker_id, payment_method, received_amount, items) -> OperationResult:
    """
    Validate a cart, price it from the catalog and commit it atomically.

    Returns OperationResult:
      ok   -> data {"saleId", "total"} (+ "change" when an amount was received)
      fail -> error message and code (validation / not_found / business_rule /
              concurrency / internal). No partial state in any failure case.
    """
    try:
        req = parse_sale_request(worker_id, payment_method, received_amount, items)
    except ValidationError as e:
        return OperationResult.failure(str(e), CODE_VALIDATION)

    def _op():
        priced_total = validate_and_price_cart(req)
        return commit_sale(req, priced_total)

    try:
        sale = run_with_retry(_op)
    except ValidationError as e:
        db.session.rollback()
        return OperationResult.failure(str(e), CODE_VALIDATION)
    except NotFoundError as e:
        db.session.rollback()
        current_app.logger.info("Sale rejected: %s", e)
        return OperationResult.failure(str(e), CODE_NOT_FOUND)
    except SaleError as e:
        db.session.rollback()
        current_app.logger.info("Sale rejected: %s", e)
        return OperationResult.failure(str(e), CODE_BUSINESS_RULE, e.details)
    except ConcurrencyError as e:
        db.session.rollback()
        current_app.logger.warning("Sale aborted by concurrent modification: %s", e)
        return OperationResult.failure(INTERNAL_SALE_ERROR, CODE_CONCURRENCY)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to complete sale")
        return OperationResult.failure(INTERNAL_SALE_ERROR, CODE_INTERNAL)

    current_app.logger.info(
        "Sale %s completed by worker %s: %s lines, total %s",
        sale.id, req.worker_id, len(req.lines), sale.total_cents,
    )
    data = {"saleId": sale.id, "total": sale.total_cents}
    if sale.received_amount_cents is not None:
        data["change"] = sale.change_cents
    return OperationResult.success(**data)


def get_sale(sale_id: int) -> dict | None:
    """Sale with its line items, or None."""
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        return None
    data = sale.to_dict(include_lines=True)
    data["worker_name"] = sale.worker.name if sale.worker else None
    return data
