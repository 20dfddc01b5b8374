from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


OPERATION_ADD = "add"
OPERATION_SUBTRACT = "subtract"
STOCK_OPERATIONS = (OPERATION_ADD, OPERATION_SUBTRACT)

CAUSE_SALE = "sale"
CAUSE_ADJUSTMENT = "adjustment"


def sale_reason(sale_id: int) -> str:
    """Reason string logged for sale-driven subtractions."""
    return f"sale:{sale_id}"


class StockMovement(db.Model):
    """
    Append-only stock audit log.

    Every change to Product.stock writes exactly one row here in the same
    DB transaction. Rows are never updated or deleted.

    Cause is structured: sale-driven rows carry sale_id (and the
    "sale:<id>" reason), manual adjustments carry no sale_id and, for
    subtractions, a mandatory reason typed by the worker.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.CheckConstraint(
            "operation IN ('add', 'subtract')",
            name="ck_stock_movements_operation",
        ),
        db.Index("ix_stock_movements_created_at", "created_at"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)

    operation = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")
    worker = db.relationship("Worker")
    sale = db.relationship("Sale")

    @property
    def cause(self) -> str:
        return CAUSE_SALE if self.sale_id is not None else CAUSE_ADJUSTMENT

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.operation == OPERATION_ADD else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "worker_id": self.worker_id,
            "operation": self.operation,
            "quantity": self.quantity,
            "reason": self.reason,
            "cause": self.cause,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
