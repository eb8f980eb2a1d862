"""
Sales Service - sale recording with stock adjustment

A sale is recorded in one step: every line is checked against the
product's stock and decremented, then the sale row is inserted, all inside
a single transaction. Any failure rolls the whole thing back, so a sale is
either fully recorded with all its stock taken, or not recorded at all.

STOCK RECONCILIATION AFTER CREATION:
- items and total are frozen once the sale exists
- moving a sale to CANCELLED returns its quantities to stock
- deleting a sale that is not CANCELLED also returns its quantities
- a CANCELLED sale cannot be reopened
"""

from __future__ import annotations

from flask import current_app

from ..models import (
    Product,
    Sale,
    SaleItem,
    SALE_STATUSES,
    SALE_STATUS_CANCELLED,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    validate_sale_items,
    enforce_rules_sale,
)
from .products_service import ProductNotFound
from .storage_gateway import StorageGateway

SALE_REQUIRED_FIELDS = {"sale_date", "items", "total", "payment_method", "status"}

# "items" is validated separately (validate_sale_items)
SALE_HEADER_POLICY = ModelValidationPolicy(
    writable_fields={"sale_date", "customer", "total", "payment_method", "status"},
    required_on_create={"sale_date", "total", "payment_method", "status"},
)

SALE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"sale_date", "customer", "payment_method", "status"},
)

SALE_FROZEN_FIELDS = {"items", "total"}


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFound(SaleError):
    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        self.sale_id = sale_id


class InsufficientStock(SaleError):
    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}: {available} available, {requested} requested",
            details={
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


def validate_new_sale(payload) -> tuple[dict, list[dict]]:
    """
    Check a create payload before anything touches the database.

    Returns (header patch, cleaned line items).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = sorted(f for f in SALE_REQUIRED_FIELDS if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # JSON numbers only
    total = payload["total"]
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise ValidationError("total must be a number", details={"field": "total"})

    header_payload = {k: v for k, v in payload.items() if k != "items"}
    header = validate_payload(model=Sale, payload=header_payload, policy=SALE_HEADER_POLICY, partial=False)
    enforce_rules_sale(header, SALE_STATUSES)

    lines = validate_sale_items(payload["items"])
    return header, lines


class SaleProcessor:
    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    # ------------------------------------------------------------------
    # Stock movements (always called inside an open transaction)
    # ------------------------------------------------------------------

    def _take_stock(self, lines: list[dict]) -> list[SaleItem]:
        """
        Decrement stock line by line, in the order given.

        Each decrement is flushed immediately, so a later line for the same
        product sees the reduced quantity.
        """
        items: list[SaleItem] = []
        for line in lines:
            product = self.gateway.get(Product, line["product_id"], for_update=True)
            if product is None:
                raise ProductNotFound(line["product_id"])

            if product.stock_quantity < line["quantity"]:
                raise InsufficientStock(product.name, product.stock_quantity, line["quantity"])

            product.stock_quantity -= line["quantity"]
            self.gateway.flush()

            unit_price = line["unit_price"]
            if unit_price is None:
                unit_price = product.effective_price

            items.append(SaleItem(
                product_id=product.id,
                product_name=product.name,
                quantity=line["quantity"],
                unit_price=unit_price,
            ))
        return items

    def _return_stock(self, sale: Sale) -> None:
        for item in sale.items:
            product = self.gateway.get(Product, item.product_id, for_update=True)
            if product is None:
                current_app.logger.warning(
                    "Sale %s: product %s no longer exists, %s unit(s) not restocked",
                    sale.id, item.product_id, item.quantity,
                )
                continue
            product.stock_quantity += item.quantity
            self.gateway.flush()

    def _check_total(self, declared: float, items: list[SaleItem]) -> None:
        tolerance = current_app.config.get("SALE_TOTAL_TOLERANCE", 0.01)
        items_total = round(sum(item.line_total for item in items), 2)
        if abs(items_total - declared) > tolerance:
            raise ValidationError(
                "total does not match the sum of the item totals",
                details={"total": declared, "items_total": items_total},
            )

    def _get_locked(self, sale_id: int) -> Sale:
        sale = self.gateway.get(Sale, sale_id, for_update=True)
        if sale is None:
            raise SaleNotFound(sale_id)
        return sale

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_sale(self, payload: dict) -> Sale:
        """
        Record a sale and take its stock.

        Raises:
            ValidationError: missing/invalid header fields or wrong total
            InvalidItemStructure: malformed line item
            ProductNotFound: a line references an unknown product
            InsufficientStock: a line asks for more than is in stock
            StorageError: unexpected database failure
        """
        header, lines = validate_new_sale(payload)

        def _op():
            with self.gateway.transaction(immediate=True):
                items = self._take_stock(lines)
                self._check_total(header["total"], items)

                sale = Sale(**header)
                sale.items = items
                self.gateway.add(sale)
            return sale

        sale = self.gateway.run_with_retry(_op)
        current_app.logger.info(
            "Recorded sale id=%s lines=%d total=%.2f", sale.id, len(lines), sale.total
        )
        return sale

    def list_sales(
        self,
        status: str | None = None,
        page: int | None = None,
        per_page: int | None = None,
    ) -> dict:
        if status is not None and status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")

        base_query = self.gateway.query(Sale).order_by(Sale.sale_date.desc(), Sale.id.desc())
        if status is not None:
            base_query = base_query.filter(Sale.status == status)

        if page is None:
            sales = base_query.all()
            return {"items": [s.to_dict() for s in sales], "count": len(sales)}

        per_page = max(1, min(per_page or 20, 100))
        page = max(page, 1)

        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        sales = base_query.offset((page - 1) * per_page).limit(per_page).all()

        return {
            "items": [s.to_dict() for s in sales],
            "count": len(sales),
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.gateway.get(Sale, sale_id)
        if sale is None:
            raise SaleNotFound(sale_id)
        return sale

    def update_sale(self, sale_id: int, payload: dict) -> Sale:
        if not payload:
            raise ValidationError("No fields provided for update")
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        frozen = sorted(SALE_FROZEN_FIELDS & payload.keys())
        if frozen:
            raise ValidationError(
                f"Cannot change {', '.join(frozen)} of a recorded sale",
                details={"fields": frozen},
            )

        patch = validate_payload(model=Sale, payload=payload, policy=SALE_UPDATE_POLICY, partial=True)
        enforce_rules_sale(patch, SALE_STATUSES)

        def _op():
            with self.gateway.transaction(immediate=True):
                sale = self._get_locked(sale_id)
                new_status = patch.get("status", sale.status)

                if sale.status == SALE_STATUS_CANCELLED and new_status != SALE_STATUS_CANCELLED:
                    raise ValidationError("Cancelled sales cannot be reopened")

                cancelling = sale.status != SALE_STATUS_CANCELLED and new_status == SALE_STATUS_CANCELLED
                if cancelling:
                    self._return_stock(sale)

                for k, v in patch.items():
                    setattr(sale, k, v)
            return sale, cancelling

        sale, cancelled = self.gateway.run_with_retry(_op)
        if cancelled:
            current_app.logger.info("Cancelled sale id=%s, stock returned", sale.id)
        else:
            current_app.logger.info(
                "Updated sale id=%s fields: %s", sale.id, ", ".join(sorted(patch.keys()))
            )
        return sale

    def cancel_sale(self, sale_id: int) -> Sale:
        """Shortcut for update_sale(sale_id, {"status": CANCELLED})."""
        return self.update_sale(sale_id, {"status": SALE_STATUS_CANCELLED})

    def delete_sale(self, sale_id: int) -> None:
        def _op():
            with self.gateway.transaction(immediate=True):
                sale = self._get_locked(sale_id)
                restocked = sale.status != SALE_STATUS_CANCELLED
                if restocked:
                    self._return_stock(sale)
                self.gateway.delete(sale)
            return restocked

        restocked = self.gateway.run_with_retry(_op)
        current_app.logger.info("Deleted sale id=%s (stock returned: %s)", sale_id, restocked)
