from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


class Sale(db.Model):
    """
    Completed sale. Immutable once written.

    WHY: total_cents is computed server-side from catalog prices at commit
    time and always equals the sum of the line subtotals. The client never
    supplies a price.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)

    # Free-form label; no payment is processed
    payment_method = db.Column(db.String(32), nullable=False)
    # Cash tendered, when the cashier typed it in
    received_amount_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    worker = db.relationship("Worker")

    @property
    def change_cents(self) -> int | None:
        if self.received_amount_cents is None:
            return None
        return max(self.received_amount_cents - self.total_cents, 0)

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "worker_id": self.worker_id,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "received_amount_cents": self.received_amount_cents,
            "change_cents": self.change_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Line items on a sale; unit price is a snapshot taken at commit time."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleLine.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
