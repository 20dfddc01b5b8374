# backend/stockseguro/routes/inventory.py
"""
Stock adjustment routes.

SECURITY: All routes require authentication; the adjusting worker is the
session's worker.
"""
from flask import Blueprint, request, jsonify, g

from ..services import inventory_service, ledger_service, catalog_service
from ..decorators import require_auth


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_auth
def adjust_stock_route():
    """
    Add or subtract stock for one product.

    Body: {"productId": "...", "operation": "add" | "subtract",
           "quantity": 5, "reason": "broken bottle"}
    A reason is required for "subtract".
    """
    data = request.get_json(silent=True) or {}

    result = inventory_service.adjust_stock(
        worker_id=g.current_worker.id,
        product_id=data.get("productId", data.get("product_id")),
        operation=data.get("operation"),
        quantity=data.get("quantity"),
        reason=data.get("reason"),
    )
    return jsonify(result.to_dict()), result.http_status


@inventory_bp.get("/<product_id>/movements")
@require_auth
def product_movements_route(product_id: str):
    if catalog_service.get_product(product_id) is None:
        return jsonify({"ok": False, "error": "Product not found."}), 404

    limit = request.args.get("limit", default=50, type=int)
    rows = ledger_service.list_product_movements(product_id, limit=limit)
    return jsonify({"ok": True, "rows": rows}), 200
