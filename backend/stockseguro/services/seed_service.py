# Overview: Demo catalog and worker used by `flask system init` and `flask catalog seed`.

from __future__ import annotations

from ..extensions import db
from ..models import Product, Worker
from .auth_service import create_worker

DEMO_WORKER = {
    "rut": "12.345.678-9",
    "name": "Kevin Demo",
    "email": "kevin@demo.com",
    "pin": "1234",
}

# (id/barcode, name, category, unit price, box price, stock, min stock, image)
DEMO_CATALOG = [
    ("7702116011239", "Aguardiente Antioqueño 750ml", "Licores", 28000, 280000, 45, 10, "🍶"),
    ("7702259001234", "Cerveza Poker Lata 330ml", "Cervezas", 2500, 60000, 120, 30, "🍺"),
    ("7702259005678", "Cerveza Águila Lata 330ml", "Cervezas", 2500, 60000, 150, 40, "🍺"),
    ("7702259009012", "Club Colombia Roja 330ml", "Cervezas", 3200, 76800, 80, 20, "🍺"),
    ("7702116012345", "Ron Medellín Añejo 750ml", "Licores", 35000, 350000, 30, 8, "🥃"),
    ("7702116013456", "Tequila José Cuervo 750ml", "Licores", 65000, 650000, 18, 5, "🥃"),
    ("8410161011234", "Vino Casillero del Diablo 750ml", "Vinos", 45000, 270000, 25, 6, "🍷"),
    ("8410161015678", "Vino Gato Negro Merlot 750ml", "Vinos", 32000, 192000, 35, 8, "🍷"),
    ("7702116014567", "Whisky Old Parr 12 años 750ml", "Licores", 125000, 1250000, 12, 3, "🥃"),
    ("7702116015678", "Vodka Smirnoff 750ml", "Licores", 45000, 450000, 22, 6, "🍸"),
    ("7702259010234", "Cerveza Corona Botella 355ml", "Cervezas", 4500, 108000, 60, 15, "🍺"),
    ("7702259011345", "Cerveza Heineken Lata 330ml", "Cervezas", 4000, 96000, 72, 18, "🍺"),
    ("7702116016789", "Baileys Original 750ml", "Cremas", 68000, 680000, 15, 4, "🥛"),
    ("7899026001234", "Energizante Red Bull 250ml", "Energizantes", 6500, 156000, 90, 24, "⚡"),
    ("7702116017890", "Ginebra Bombay Sapphire 750ml", "Licores", 95000, 950000, 10, 3, "🍸"),
    ("7702259012456", "Cerveza Budweiser Lata 330ml", "Cervezas", 3800, 91200, 55, 12, "🍺"),
]


def _catalog_fields(row: tuple) -> dict:
    product_id, name, category, unit_price, box_price, stock, min_stock, image = row
    return {
        "id": product_id,
        "barcode": product_id,
        "name": name,
        "category": category,
        "unit_price_cents": unit_price,
        "box_price_cents": box_price,
        "stock": stock,
        "min_stock": min_stock,
        "image": image,
    }


def seed_demo_worker_if_needed() -> Worker | None:
    """Create the demo worker when no worker exists. Returns it, or None."""
    if db.session.query(Worker.id).first() is not None:
        return None
    return create_worker(**DEMO_WORKER)


def seed_catalog_if_needed() -> int:
    """Insert the demo catalog into an empty products table. Returns rows inserted."""
    if db.session.query(Product.id).first() is not None:
        return 0
    for row in DEMO_CATALOG:
        db.session.add(Product(is_active=True, **_catalog_fields(row)))
    db.session.commit()
    return len(DEMO_CATALOG)


def replace_catalog_soft() -> tuple[int, int]:
    """
    Make the active catalog equal to the demo catalog without deleting rows.

    Products outside the seed are deactivated; seeded products are
    inserted or refreshed (catalog fields only, stock is left alone for
    existing rows). Returns (upserted, deactivated).
    """
    seed_ids = {row[0] for row in DEMO_CATALOG}

    deactivated = (
        db.session.query(Product)
        .filter(Product.id.notin_(seed_ids), Product.is_active.is_(True))
        .update({Product.is_active: False}, synchronize_session=False)
    )

    upserted = 0
    for row in DEMO_CATALOG:
        fields = _catalog_fields(row)
        product = db.session.get(Product, fields["id"])
        if product is None:
            # Free the barcode if an inactive product still holds it
            clash = db.session.query(Product).filter(Product.barcode == fields["barcode"]).first()
            if clash is not None:
                clash.barcode = f"{clash.barcode}-retired-{clash.id}"[:64]
                db.session.flush()
            db.session.add(Product(is_active=True, **fields))
        else:
            fields.pop("stock")
            for key, value in fields.items():
                setattr(product, key, value)
            product.is_active = True
        upserted += 1

    db.session.commit()
    return upserted, deactivated
