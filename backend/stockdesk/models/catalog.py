from __future__ import annotations

import json

from ..extensions import db
from stockdesk.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    STOCK OWNERSHIP:
    Product.stock_quantity is written by the catalog (direct edits) and by
    the sale processor (decrement on sale, restock on cancel/delete). It
    never goes below zero.

    IMAGES:
    The ordered list of image references is stored as JSON text in the
    "images" column. Use the `images` property; `images_json` is the raw
    column and should not be touched outside this class.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_active_stock", "is_active", "stock_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)
    subcategory = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    model = db.Column(db.String(120), nullable=True)
    material = db.Column(db.String(120), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(64), nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    price = db.Column(db.Float, nullable=False)
    promo_price = db.Column(db.Float, nullable=True)
    weight = db.Column(db.Float, nullable=True)

    images_json = db.Column("images", db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def images(self) -> list[str]:
        if not self.images_json:
            return []
        return json.loads(self.images_json)

    @images.setter
    def images(self, value: list[str] | None) -> None:
        self.images_json = json.dumps(list(value)) if value else None

    @property
    def effective_price(self) -> float:
        """Price charged when a sale line does not name one."""
        if self.promo_price is not None:
            return self.promo_price
        return self.price

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "brand": self.brand,
            "model": self.model,
            "material": self.material,
            "color": self.color,
            "size": self.size,
            "stock_quantity": self.stock_quantity,
            "min_stock": self.min_stock,
            "price": self.price,
            "promo_price": self.promo_price,
            "weight": self.weight,
            "images": self.images,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
