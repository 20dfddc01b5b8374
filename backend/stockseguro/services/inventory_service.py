# Overview: Service-layer operations for inventory; manual stock adjustments with audit log.

# backend/stockseguro/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models.inventory import OPERATION_ADD, OPERATION_SUBTRACT, STOCK_OPERATIONS
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError, clean_text, parse_positive_quantity
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
"""
Stock Adjustment Invariants (authoritative)

- Every manual stock change writes exactly one StockMovement in the same
  DB transaction as the stock update.
- "subtract" requires a non-empty trimmed reason (breakage, loss,
  miscount); "add" does not, and is logged with a null reason.
- Stock never goes negative: the update is conditional on
  stock - quantity >= 0 and on the product still being active.
- Validation failures leave the store untouched.
"""

MAX_REASON_LENGTH = 255

SUBTRACT_REASON_REQUIRED = "Please enter a short reason for the stock deduction."
INTERNAL_ADJUST_ERROR = "Internal error adjusting stock."


class StockAdjustmentError(Exception):
    """Raised for adjustment business-rule errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class AdjustmentRequest:
    worker_id: int
    product_id: str
    operation: str
    quantity: int
    reason: str | None

    @property
    def delta(self) -> int:
        return self.quantity if self.operation == OPERATION_ADD else -self.quantity


def parse_adjustment_request(worker_id, product_id, operation, quantity, reason=None) -> AdjustmentRequest:
    """Input validation; touches no store."""
    if not worker_id or isinstance(worker_id, bool):
        raise ValidationError("Invalid worker.")
    try:
        worker_id = int(worker_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid worker.")
    if worker_id <= 0:
        raise ValidationError("Invalid worker.")

    product_id = clean_text(product_id)
    if not product_id:
        raise ValidationError("Invalid product.")

    operation = clean_text(operation)
    if operation not in STOCK_OPERATIONS:
        raise ValidationError("Invalid operation.")

    try:
        quantity = parse_positive_quantity(quantity)
    except ValidationError:
        raise ValidationError("Invalid quantity.")

    if operation == OPERATION_SUBTRACT:
        reason = clean_text(reason)
        if not reason:
            raise ValidationError(SUBTRACT_REASON_REQUIRED)
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters.")
    else:
        # Additions carry no reason in the log
        reason = None

    return AdjustmentRequest(
        worker_id=worker_id,
        product_id=product_id,
        operation=operation,
        quantity=quantity,
        reason=reason,
    )


def _validate_against_store(req: AdjustmentRequest) -> None:
    if get_active_worker(req.worker_id) is None:
        raise ValidationError("Invalid worker.")

    product = catalog_service.find_active_by_id(req.product_id)
    if product is None:
        raise NotFoundError("Product not found.")

    if req.operation == OPERATION_SUBTRACT and product.stock < req.quantity:
        raise StockAdjustmentError(
            f"Insufficient stock (available {product.stock}).",
            details={"product_id": req.product_id, "available": product.stock},
        )


def _commit_adjustment(req: AdjustmentRequest) -> int:
    begin_immediate()

    affected = catalog_service.conditional_adjust_stock(req.product_id, req.delta)
    if affected == 0:
        raise ConcurrencyError(
            f"Could not adjust stock for {req.product_id}.",
            details={"product_id": req.product_id, "delta": req.delta},
        )

    ledger_service.insert_stock_movement(
        product_id=req.product_id,
        worker_id=req.worker_id,
        operation=req.operation,
        quantity=req.quantity,
        reason=req.reason,
        created_at=utcnow(),
    )

    new_stock = catalog_service.read_stock(req.product_id)
    db.session.commit()
    return new_stock


def adjust_stock(worker_id, product_id, operation, quantity, reason=None) -> OperationResult:
    """
    Manually add or subtract stock for one product and log the movement.

    Returns OperationResult:
      ok   -> data {"newStock"}
      fail -> error message and code; the store is unchanged.
    """
    try:
        req = parse_adjustment_request(worker_id, product_id, operation, quantity, reason)
    except ValidationError as e:
        return OperationResult.failure(str(e), CODE_VALIDATION)

    def _op():
        _validate_against_store(req)
        return _commit_adjustment(req)

    try:
        new_stock = run_with_retry(_op)
    except ValidationError as e:
        db.session.rollback()
        return OperationResult.failure(str(e), CODE_VALIDATION)
    except NotFoundError as e:
        db.session.rollback()
        return OperationResult.failure(str(e), CODE_NOT_FOUND)
    except StockAdjustmentError as e:
        db.session.rollback()
        current_app.logger.info("Stock adjustment rejected: %s", e)
        return OperationResult.failure(str(e), CODE_BUSINESS_RULE, e.details)
    except ConcurrencyError as e:
        db.session.rollback()
        current_app.logger.warning("Stock adjustment aborted by concurrent modification: %s", e)
        return OperationResult.failure(INTERNAL_ADJUST_ERROR, CODE_CONCURRENCY)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust stock")
        return OperationResult.failure(INTERNAL_ADJUST_ERROR, CODE_INTERNAL)

    current_app.logger.info(
        "Stock %s %s x%s by worker %s -> %s",
        req.operation, req.product_id, req.quantity, req.worker_id, new_stock,
    )
    return OperationResult.success(newStock=new_stock)
