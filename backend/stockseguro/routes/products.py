# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/stockseguro/routes/products.py
"""
Catalog routes.

SECURITY: All routes require authentication.
Stock is read-only here; it changes through /api/sales and
/api/inventory/adjust so that every change is logged.
"""
from flask import Blueprint, request, g

from ..models import Product
from ..services import catalog_service
from ..services.catalog_service import PRODUCT_CREATE_FIELDS, PRODUCT_MUTABLE_FIELDS
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth
from ..services.results import OperationResult, CODE_VALIDATION, CODE_NOT_FOUND, CODE_CONFLICT

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_FIELDS,
    required_on_create={"id", "barcode", "name", "category", "unit_price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
)

# Wire names used by the POS front end
CAMEL_CASE_FIELDS = {
    "unitPrice": "unit_price_cents",
    "boxPrice": "box_price_cents",
    "minStock": "min_stock",
    "isActive": "is_active",
}

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _normalize_keys(payload: dict) -> dict:
    return {CAMEL_CASE_FIELDS.get(k, k): v for k, v in payload.items()}


def _failure(error, code: str):
    result = OperationResult.failure(str(error), code)
    return result.to_dict(), result.http_status


@products_bp.get("")
@require_auth
def list_products():
    """Active products ordered by category, then name."""
    items = catalog_service.list_active_products()
    return {"ok": True, "products": items, "count": len(items)}


@products_bp.get("/low-stock")
@require_auth
def list_low_stock():
    items = catalog_service.list_low_stock_products()
    return {"ok": True, "products": items, "count": len(items)}


@products_bp.get("/lookup/<code>")
@require_auth
def lookup_product(code: str):
    """Scanner lookup by barcode (falls back to product id)."""
    product = catalog_service.find_active_by_code(code)
    if product is None:
        return _failure(f"Product with code {code} not found", CODE_NOT_FOUND)
    return {"ok": True, "product": product.to_dict()}


@products_bp.get("/<product_id>")
@require_auth
def get_product(product_id: str):
    product = catalog_service.find_active_by_id(product_id)
    if product is None:
        return _failure("Product not found.", CODE_NOT_FOUND)
    return {"ok": True, "product": product.to_dict()}


@products_bp.post("")
@require_auth
def create_product_route():
    payload = _normalize_keys(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch, worker_id=g.current_worker.id)
    except ValidationError as e:
        return _failure(e, CODE_VALIDATION)
    except ConflictError as e:
        return _failure(e, CODE_CONFLICT)

    return {"ok": True, "product": created}, 201


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    payload = _normalize_keys(request.get_json(silent=True) or {})
    # Clients send the full record back; the id in the path is authoritative
    payload.pop("id", None)

    if "stock" in payload:
        stock = payload.pop("stock")
        current = catalog_service.get_product(product_id)
        if current is not None and stock != current.stock:
            return _failure("Stock changes must be recorded as a stock adjustment.", CODE_VALIDATION)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return _failure(e, CODE_VALIDATION)
    except ConflictError as e:
        return _failure(e, CODE_CONFLICT)
    except NotFoundError as e:
        return _failure(e, CODE_NOT_FOUND)

    return {"ok": True, "product": updated}, 200


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    """Soft delete: the product disappears from the catalog but keeps its history."""
    try:
        catalog_service.soft_delete_product(product_id=product_id)
    except NotFoundError as e:
        return _failure(e, CODE_NOT_FOUND)
    return {"ok": True}, 200
