# backend/stockseguro/services/catalog_service.py
"""
Catalog Service

Owns every read and write of Product rows:
- point lookups over active products (id, barcode, scanner code)
- the conditional stock update used by the sale and adjustment engines
- create / update / soft-delete maintenance

INVARIANTS:
- id and barcode are each unique across ALL products (active or not).
- stock >= 0 at all times; stock only moves through
  conditional_adjust_stock, always next to a StockMovement row.
- delete is soft (is_active = False); rows are never removed.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import OPERATION_ADD
from ..validation import ConflictError, NotFoundError, ValidationError
from ..time_utils import utcnow

PRODUCT_CREATE_FIELDS = {
    "id", "barcode", "name", "category", "unit_price_cents",
    "box_price_cents", "stock", "min_stock", "image",
}
# No stock here: changes go through adjust_stock
PRODUCT_MUTABLE_FIELDS = {
    "barcode", "name", "category", "unit_price_cents",
    "box_price_cents", "min_stock", "image", "is_active",
}

INITIAL_STOCK_REASON = "initial stock"


def apply_product_patch(p: Product, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(p, k, v)


def find_active_by_id(product_id: str) -> Product | None:
    if not product_id:
        return None
    return (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.is_active.is_(True))
        .first()
    )


def find_active_by_barcode(code: str) -> Product | None:
    if not code:
        return None
    return (
        db.session.query(Product)
        .filter(Product.barcode == code, Product.is_active.is_(True))
        .first()
    )


def find_active_by_code(code: str) -> Product | None:
    """Scanner lookup: barcode first, then product id."""
    code = (code or "").strip()
    return find_active_by_barcode(code) or find_active_by_id(code)


def exists(product_id: str | None = None, barcode: str | None = None) -> bool:
    """True if any product (active or not) uses the id or the barcode."""
    clauses = []
    if product_id:
        clauses.append(Product.id == product_id)
    if barcode:
        clauses.append(Product.barcode == barcode)
    if not clauses:
        return False
    return db.session.query(Product.id).filter(or_(*clauses)).first() is not None


def read_stock(product_id: str) -> int | None:
    """Stock straight from the store, bypassing the identity map."""
    return db.session.query(Product.stock).filter(Product.id == product_id).scalar()


def read_unit_price(product_id: str) -> int | None:
    """Current unit price of an active product, straight from the store."""
    return (
        db.session.query(Product.unit_price_cents)
        .filter(Product.id == product_id, Product.is_active.is_(True))
        .scalar()
    )


def conditional_adjust_stock(product_id: str, delta: int, *, require_active: bool = True) -> int:
    """
    Apply stock += delta as one conditional UPDATE.

    The row only changes if stock + delta stays >= 0 (and the product is
    still active when require_active). Returns the affected row count;
    0 means the guard failed and the caller must abort its transaction.

    Does not commit.
    """
    conditions = [Product.id == product_id, Product.stock + delta >= 0]
    if require_active:
        conditions.append(Product.is_active.is_(True))

    result = db.session.execute(
        update(Product)
        .where(*conditions)
        .values(stock=Product.stock + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def get_product(product_id: str) -> Product | None:
    return db.session.get(Product, product_id)


def list_active_products() -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.category.asc(), Product.name.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def list_low_stock_products() -> list[dict]:
    """
    Active products at or below their minimum, most urgent first.

    Out-of-stock rows are included and flagged so the stock monitor can
    separate "low" from "empty".
    """
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
    items = []
    for p in products:
        row = p.to_dict()
        row["is_out_of_stock"] = p.stock == 0
        items.append(row)
    return items


def create_product(*, patch: dict, worker_id: int | None = None) -> dict:
    """
    Create product using a validated patch dict.

    When the product starts with stock and the creating worker is known,
    the opening quantity is logged as an "add" movement in the same
    transaction.

    Raises:
        ValidationError: if a required field is missing
        ConflictError: if the id or barcode is already used by any product
    """
    for required in ("id", "barcode", "name", "category", "unit_price_cents"):
        if not patch.get(required):
            raise ValidationError(f"{required} is required")

    if exists(product_id=patch["id"], barcode=patch["barcode"]):
        raise ConflictError("A product with that ID or barcode already exists.")

    p = Product(is_active=True)
    apply_product_patch(p, patch, PRODUCT_CREATE_FIELDS)
    if p.stock is None:
        p.stock = 0

    try:
        db.session.add(p)
        db.session.flush()

        if worker_id and p.stock > 0:
            db.session.add(StockMovement(
                product_id=p.id,
                worker_id=worker_id,
                operation=OPERATION_ADD,
                quantity=p.stock,
                reason=INITIAL_STOCK_REASON,
                created_at=utcnow(),
            ))

        db.session.commit()
    except IntegrityError:
        # A concurrent writer took the id or barcode after the check above
        db.session.rollback()
        raise ConflictError("A product with that ID or barcode already exists.")

    current_app.logger.info("Product created id=%s barcode=%s stock=%s", p.id, p.barcode, p.stock)
    return p.to_dict()


def update_product(*, product_id: str, patch: dict) -> dict:
    """
    Update catalog fields of a product.

    Setting is_active=True reactivates a soft-deleted product.

    Raises:
        NotFoundError: if no product has this id
        ConflictError: if the new barcode belongs to a different product
    """
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found.")

    if "barcode" in patch and patch["barcode"] != p.barcode:
        clash = (
            db.session.query(Product.id)
            .filter(Product.barcode == patch["barcode"], Product.id != p.id)
            .first()
        )
        if clash:
            raise ConflictError("That barcode is already used by another product.")

    apply_product_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("That barcode is already used by another product.")

    current_app.logger.info(
        "Product updated id=%s fields=%s", p.id, ", ".join(sorted(patch.keys()))
    )
    return p.to_dict()


def soft_delete_product(*, product_id: str) -> dict:
    """
    Soft-delete a product (is_active = False). Idempotent.

    Raises:
        NotFoundError: if no product has this id
    """
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found.")

    # Soft-delete only: preserve IDs and historical references.
    if p.is_active:
        p.is_active = False
        db.session.commit()
        current_app.logger.info("Product deactivated id=%s", p.id)

    return p.to_dict()
