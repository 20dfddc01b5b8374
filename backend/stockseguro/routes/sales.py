# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockseguro/routes/sales.py
"""
Sales API routes.

The cashier comes from the session, never from the body. Any price sent
by the client is ignored: totals are computed from the catalog.
"""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def complete_sale_route():
    """
    Complete a sale.

    Body: {"paymentMethod": "cash", "receivedAmount": 10000 | null,
           "items": [{"productId": "...", "quantity": 2}, ...]}
    """
    data = request.get_json(silent=True) or {}

    result = sales_service.complete_sale(
        worker_id=g.current_worker.id,
        payment_method=data.get("paymentMethod", data.get("payment_method")),
        received_amount=data.get("receivedAmount", data.get("received_amount")),
        items=data.get("items"),
    )

    status = 201 if result.ok else result.http_status
    return jsonify(result.to_dict()), status


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"ok": False, "error": "Sale not found"}), 404
    return jsonify({"ok": True, "sale": sale}), 200
