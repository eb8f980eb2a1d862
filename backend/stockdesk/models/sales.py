from __future__ import annotations

import json
from dataclasses import dataclass, asdict

from ..extensions import db
from stockdesk.time_utils import to_utc_z

SALE_STATUS_PENDING = "PENDING"
SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_CANCELLED = "CANCELLED"
SALE_STATUSES = (SALE_STATUS_PENDING, SALE_STATUS_COMPLETED, SALE_STATUS_CANCELLED)


@dataclass(frozen=True)
class SaleItem:
    """
    One line of a sale.

    Not a table: lines only exist serialized inside their Sale. product_name
    is a snapshot taken when the sale was recorded, so renaming or deleting
    the product later does not rewrite history.
    """
    product_id: int
    product_name: str
    quantity: int
    unit_price: float

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["line_total"] = self.line_total
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SaleItem":
        return cls(
            product_id=int(data["product_id"]),
            product_name=data["product_name"],
            quantity=int(data["quantity"]),
            unit_price=float(data["unit_price"]),
        )


class Sale(db.Model):
    """
    Sale record with its line items embedded.

    The "items" column holds the JSON-encoded list of SaleItem; the `items`
    property is the only way in or out, so callers always work with
    SaleItem objects in their original order.
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Period and status reports
        db.Index("ix_sales_sale_date", "sale_date"),
        db.Index("ix_sales_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    customer = db.Column(db.String(255), nullable=True)

    items_json = db.Column("items", db.Text, nullable=False)

    total = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def items(self) -> list[SaleItem]:
        if not self.items_json:
            return []
        return [SaleItem.from_dict(entry) for entry in json.loads(self.items_json)]

    @items.setter
    def items(self, value: list[SaleItem]) -> None:
        self.items_json = json.dumps([item.to_dict() for item in value])

    def __repr__(self) -> str:
        return f"<Sale id={self.id} status={self.status} total={self.total}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "sale_date": to_utc_z(self.sale_date),
            "customer": self.customer,
            "total": self.total,
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data
