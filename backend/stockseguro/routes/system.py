# backend/stockseguro/routes/system.py
"""Liveness probe for the till and for process supervisors."""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Product, Worker

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count active products and workers; any store error marks the check unhealthy."""
    started = time.perf_counter()
    report = {}
    try:
        report["status"] = "healthy"
        report["details"] = {
            "active_products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
            "workers": db.session.query(Worker).count(),
        }
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        report = {"status": "unhealthy", "error": "Database error"}
    report["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return report


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "database": database}, status_code
