# backend/stockdesk/services/products_service.py
"""
Catalog service: CRUD over products.

Stock quantities set here are direct edits (receiving goods, corrections).
Sales never come through this module; see sales_service.
"""
from __future__ import annotations

from flask import current_app

from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_product,
)
from .storage_gateway import StorageGateway

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category", "subcategory", "brand", "model",
    "material", "color", "size", "stock_quantity", "min_stock", "price",
    "promo_price", "weight", "images", "is_active",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "price", "stock_quantity", "is_active"},
    list_fields={"images"},
)


class ProductNotFound(Exception):
    """Raised when a product id does not exist."""

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id
        self.details = {"product_id": product_id}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


class CatalogManager:
    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    def list_products(
        self,
        active: bool | None = None,
        page: int | None = None,
        per_page: int | None = None,
    ) -> dict:
        """
        Product listing with optional pagination.

        Args:
            active: Only active (True) or inactive (False) products; None for all
            page: Page number (1-indexed). If None, returns all items.
            per_page: Items per page (default 20, max 100)

        Returns:
            Dict with 'items', 'count', and pagination metadata if paginated.
        """
        base_query = self.gateway.query(Product).order_by(Product.name.asc(), Product.id.asc())
        if active is not None:
            base_query = base_query.filter(Product.is_active.is_(active))

        # If no pagination requested, return all items
        if page is None:
            products = base_query.all()
            return {
                "items": [p.to_dict() for p in products],
                "count": len(products),
            }

        # Pagination logic
        per_page = max(1, min(per_page or 20, 100))  # Default 20, max 100
        page = max(page, 1)  # Ensure page >= 1

        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1

        products = base_query.offset((page - 1) * per_page).limit(per_page).all()

        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    def get_product(self, product_id: int) -> Product:
        p = self.gateway.get(Product, product_id)
        if p is None:
            raise ProductNotFound(product_id)
        return p

    def create_product(self, payload: dict) -> Product:
        """
        Create a product from a raw JSON payload.

        Raises:
            ValidationError: missing required fields, unknown fields, bad types
                or negative quantities/prices
        """
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)

        p = Product()
        apply_product_patch(p, patch)

        self.gateway.add(p)
        self.gateway.commit()

        current_app.logger.info("Created product id=%s name=%r stock=%s", p.id, p.name, p.stock_quantity)
        return p

    def update_product(self, product_id: int, payload: dict) -> Product:
        """
        Partial update. Only PRODUCT_MUTABLE_FIELDS may be sent; anything
        else (including "id") is rejected rather than ignored.
        """
        if not payload:
            raise ValidationError("No fields provided for update")

        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)

        p = self.get_product(product_id)
        apply_product_patch(p, patch)
        self.gateway.commit()

        current_app.logger.info(
            "Updated product id=%s fields: %s", p.id, ", ".join(sorted(patch.keys()))
        )
        return p

    def delete_product(self, product_id: int) -> None:
        """Hard delete. Past sales keep their product_name snapshot."""
        p = self.get_product(product_id)
        self.gateway.delete(p)
        self.gateway.commit()

        current_app.logger.info("Deleted product id=%s", product_id)
