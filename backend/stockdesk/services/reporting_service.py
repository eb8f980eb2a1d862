# Overview: Service-layer operations for reporting; read-only aggregations over products and sales.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..models import Product, Sale
from stockdesk.time_utils import parse_iso_datetime, is_date_only, end_of_day, to_utc_z
from .storage_gateway import StorageGateway


class ReportError(Exception):
    """Raised when report parameters are missing or invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime, datetime]:
    if not start or not end:
        raise ReportError("startDate and endDate are required")
    try:
        start_dt = parse_iso_datetime(start)
        end_dt = parse_iso_datetime(end)
    except ValueError:
        raise ReportError("startDate and endDate must be ISO-8601 dates")
    if start_dt is None or end_dt is None:
        raise ReportError("startDate and endDate are required")

    # "2024-05-31" as an end bound means the whole of that day
    if is_date_only(end):
        end_dt = end_of_day(end_dt)

    if start_dt > end_dt:
        raise ReportError("startDate must not be after endDate")
    return start_dt, end_dt


class ReportingEngine:
    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    def low_stock(self, threshold: int | None = None) -> dict:
        if threshold is None:
            threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

        products = (
            self.gateway.query(Product)
            .filter(
                Product.is_active.is_(True),
                Product.stock_quantity <= threshold,
            )
            .order_by(Product.stock_quantity.asc(), Product.name.asc())
            .all()
        )
        return {
            "threshold": threshold,
            "count": len(products),
            "products": [
                {
                    "id": p.id,
                    "name": p.name,
                    "stock_quantity": p.stock_quantity,
                    "min_stock": p.min_stock,
                    "price": p.price,
                }
                for p in products
            ],
        }

    def sales_by_status(self) -> list[dict]:
        rows = (
            self.gateway.query(
                Sale.status.label("status"),
                func.count(Sale.id).label("count"),
                func.coalesce(func.sum(Sale.total), 0).label("total"),
            )
            .group_by(Sale.status)
            .order_by(Sale.status.asc())
            .all()
        )
        return [
            {
                "status": row.status,
                "count": int(row.count or 0),
                "total": round(float(row.total or 0), 2),
            }
            for row in rows
        ]

    def sales_in_period(self, start: str | None, end: str | None) -> dict:
        start_dt, end_dt = _parse_range(start, end)

        sales = (
            self.gateway.query(Sale)
            .filter(Sale.sale_date >= start_dt, Sale.sale_date <= end_dt)
            .order_by(Sale.sale_date.desc(), Sale.id.desc())
            .all()
        )
        total_value = round(sum(s.total for s in sales), 2)
        return {
            "period": {
                "start_date": to_utc_z(start_dt),
                "end_date": to_utc_z(end_dt),
            },
            "total_sales": len(sales),
            "total_value": total_value,
            "sales": [s.to_dict(include_items=False) for s in sales],
        }
