# Overview: Flask API routes for read-only history views.

from flask import Blueprint, request, jsonify, current_app

from ..services import ledger_service
from ..decorators import require_auth

"""
Read-only, paged views over the ledger. Newest first.

Query params: page (>= 1), pageSize (1..HISTORY_MAX_PAGE_SIZE).
"""

history_bp = Blueprint("history", __name__, url_prefix="/api/history")


def _paging_args():
    page = request.args.get("page", type=int)
    page_size = request.args.get("pageSize", type=int) or request.args.get("page_size", type=int)
    return page, page_size


def _render(loader, label: str):
    page, page_size = _paging_args()
    try:
        return jsonify(loader(page, page_size)), 200
    except Exception:
        current_app.logger.exception("Failed to load %s history", label)
        return jsonify({"ok": False, "error": f"Error loading {label} history."}), 500


@history_bp.get("/sales")
@require_auth
def sales_history_route():
    return _render(ledger_service.list_sales, "sales")


@history_bp.get("/stock")
@require_auth
def stock_history_route():
    return _render(ledger_service.list_stock_movements, "stock")


@history_bp.get("/movements")
@require_auth
def movements_history_route():
    return _render(ledger_service.list_activity, "movements")
