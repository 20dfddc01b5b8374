# Overview: Service-layer operations for the ledger; append-only writes and paged history reads.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleLine, StockMovement, Product, Worker
from ..models.inventory import OPERATION_ADD, STOCK_OPERATIONS
from ..time_utils import to_utc_z
"""
Ledger Invariants (authoritative)

- Sale, SaleLine and StockMovement rows are append-only: no updates, no deletes.
- Writes happen inside the caller's transaction (flush, never commit).
- sale.total_cents == sum(line.subtotal_cents) for every sale.
- History reads are newest-first by created_at (id breaks ties) and paged;
  page size is clamped to HISTORY_MAX_PAGE_SIZE.
"""


def insert_sale(
    *,
    worker_id: int,
    total_cents: int,
    payment_method: str,
    received_amount_cents: int | None,
    created_at: datetime,
) -> Sale:
    sale = Sale(
        worker_id=worker_id,
        total_cents=total_cents,
        payment_method=payment_method,
        received_amount_cents=received_amount_cents,
        created_at=created_at,
    )
    db.session.add(sale)
    db.session.flush()  # ensures sale.id is assigned without committing
    return sale


def insert_sale_line(
    *,
    sale_id: int,
    product_id: str,
    quantity: int,
    unit_price_cents: int,
) -> SaleLine:
    line = SaleLine(
        sale_id=sale_id,
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        subtotal_cents=unit_price_cents * quantity,
    )
    db.session.add(line)
    db.session.flush()
    return line


def insert_stock_movement(
    *,
    product_id: str,
    worker_id: int,
    operation: str,
    quantity: int,
    reason: str | None,
    created_at: datetime,
    sale_id: int | None = None,
) -> StockMovement:
    if operation not in STOCK_OPERATIONS:
        raise ValueError(f"invalid stock operation: {operation}")
    movement = StockMovement(
        product_id=product_id,
        worker_id=worker_id,
        operation=operation,
        quantity=quantity,
        reason=reason,
        sale_id=sale_id,
        created_at=created_at,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def clamp_paging(page, page_size) -> tuple[int, int]:
    """Normalize page/page_size the way every history view does."""
    max_size = current_app.config["HISTORY_MAX_PAGE_SIZE"]
    default_size = current_app.config["HISTORY_DEFAULT_PAGE_SIZE"]
    try:
        page_size = int(page_size) if page_size is not None else default_size
    except (TypeError, ValueError):
        page_size = default_size
    try:
        page = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page = 1
    return max(page, 1), max(1, min(max_size, page_size))


def _page_envelope(page: int, page_size: int, total: int, rows: list) -> dict:
    return {
        "ok": True,
        "page": page,
        "pageSize": page_size,
        "total": total,
        "rows": rows,
    }


def list_sales(page=None, page_size=None) -> dict:
    """Completed sales, newest first, each with cashier and line items."""
    page, page_size = clamp_paging(page, page_size)
    offset = (page - 1) * page_size

    total = db.session.query(Sale).count()

    sales = (
        db.session.query(Sale, Worker.name, Worker.email)
        .outerjoin(Worker, Worker.id == Sale.worker_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )

    sale_ids = [sale.id for sale, _, _ in sales]
    lines_by_sale: dict[int, list[dict]] = {}
    if sale_ids:
        lines = (
            db.session.query(SaleLine, Product.name)
            .outerjoin(Product, Product.id == SaleLine.product_id)
            .filter(SaleLine.sale_id.in_(sale_ids))
            .order_by(SaleLine.id.asc())
            .all()
        )
        for line, product_name in lines:
            lines_by_sale.setdefault(line.sale_id, []).append({
                "productId": line.product_id,
                "name": product_name or "Unknown",
                "quantity": line.quantity,
                "unitPrice": line.unit_price_cents,
                "subtotal": line.subtotal_cents,
            })

    rows = [
        {
            "id": sale.id,
            "total": sale.total_cents,
            "paymentMethod": sale.payment_method,
            "receivedAmount": sale.received_amount_cents,
            "createdAt": to_utc_z(sale.created_at),
            "cashier": worker_name or "Unknown",
            "cashierEmail": worker_email,
            "items": lines_by_sale.get(sale.id, []),
        }
        for sale, worker_name, worker_email in sales
    ]
    return _page_envelope(page, page_size, total, rows)


def _movement_row(movement: StockMovement, product_name, worker_name, worker_email) -> dict:
    return {
        "id": movement.id,
        "productId": movement.product_id,
        "product": product_name or "Unknown",
        "workerId": movement.worker_id,
        "worker": worker_name or "Unknown",
        "workerEmail": worker_email,
        "operation": movement.operation,
        "quantity": movement.quantity,
        "reason": movement.reason,
        "cause": movement.cause,
        "saleId": movement.sale_id,
        "createdAt": to_utc_z(movement.created_at),
    }


def _movement_query():
    return (
        db.session.query(StockMovement, Product.name, Worker.name, Worker.email)
        .outerjoin(Product, Product.id == StockMovement.product_id)
        .outerjoin(Worker, Worker.id == StockMovement.worker_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )


def list_stock_movements(page=None, page_size=None) -> dict:
    """Stock movements (sales and manual adjustments), newest first."""
    page, page_size = clamp_paging(page, page_size)
    offset = (page - 1) * page_size

    total = db.session.query(StockMovement).count()
    rows = [
        _movement_row(*r)
        for r in _movement_query().offset(offset).limit(page_size).all()
    ]
    return _page_envelope(page, page_size, total, rows)


def list_product_movements(product_id: str, limit: int = 50) -> list[dict]:
    limit = max(1, min(limit, current_app.config["HISTORY_MAX_PAGE_SIZE"]))
    rows = (
        _movement_query()
        .filter(StockMovement.product_id == product_id)
        .limit(limit)
        .all()
    )
    return [_movement_row(*r) for r in rows]


def list_activity(page=None, page_size=None) -> dict:
    """
    Unified feed of sales and stock movements, newest first.

    Each source is read up to offset + page_size rows, which is enough
    to cut the requested page out of the merged ordering.
    """
    page, page_size = clamp_paging(page, page_size)
    offset = (page - 1) * page_size
    window = offset + page_size

    total = db.session.query(Sale).count() + db.session.query(StockMovement).count()

    sales = (
        db.session.query(Sale, Worker.name)
        .outerjoin(Worker, Worker.id == Sale.worker_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(window)
        .all()
    )
    movements = _movement_query().limit(window).all()

    entries = []
    for sale, worker_name in sales:
        entries.append((sale.created_at, {
            "id": f"SALE-{sale.id}",
            "createdAt": to_utc_z(sale.created_at),
            "user": worker_name or "Unknown",
            "action": "Completed sale",
            "details": f"Sale completed. Total: {sale.total_cents}",
            "type": "success",
        }))
    for movement, product_name, worker_name, _ in movements:
        is_add = movement.operation == OPERATION_ADD
        reason = f" ({movement.reason})" if movement.reason else ""
        entries.append((movement.created_at, {
            "id": f"STK-{movement.id}",
            "createdAt": to_utc_z(movement.created_at),
            "user": worker_name or "Unknown",
            "action": "Stock added" if is_add else "Stock deducted",
            "details": f"{'+' if is_add else '-'}{movement.quantity} {product_name or 'Unknown'}{reason}",
            "type": "success" if is_add else "warning",
        }))

    # Sort is stable: on equal timestamps a sale stays ahead of its own movements
    entries.sort(key=lambda e: e[0], reverse=True)
    rows = [row for _, row in entries[offset:offset + page_size]]
    return _page_envelope(page, page_size, total, rows)
