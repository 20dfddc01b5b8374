from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


DEFAULT_PRODUCT_IMAGE = "📦"


class Product(db.Model):
    """
    Catalog entry with its live stock level.

    ID DESIGN DECISION:
    Product.id is a stable string (usually the barcode the item shipped
    with). Barcode is a separate unique lookup key so a relabelled item
    keeps its id and therefore its sales history.

    SOFT DELETE:
    Products are never removed. Sales and stock movements keep foreign
    keys to them; "deleting" sets is_active = False and every sale/lookup
    query filters on is_active.

    MONEY:
    unit_price_cents and box_price_cents are integers in the smallest
    currency unit. No float is ever persisted for a price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_products_min_stock_non_negative"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_products_unit_price_non_negative"),
        db.CheckConstraint("box_price_cents >= 0", name="ck_products_box_price_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_active", "is_active"),
    )

    id = db.Column(db.String(64), primary_key=True)
    barcode = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    box_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    # Informational threshold for the stock monitor
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    # Display glyph
    image = db.Column(db.String(16), nullable=False, default=DEFAULT_PRODUCT_IMAGE)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} barcode={self.barcode!r} stock={self.stock} active={self.is_active}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "name": self.name,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "box_price_cents": self.box_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "image": self.image,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
