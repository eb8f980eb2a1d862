# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockdesk/routes/products.py
"""Product catalog routes."""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services.products_service import CatalogManager, ProductNotFound
from ..services.storage_gateway import StorageGateway, StorageError
from ..validation import ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/products")


def _catalog() -> CatalogManager:
    return CatalogManager(StorageGateway(db.session))


@products_bp.get("")
def list_products():
    """
    List products with optional pagination.

    Query params:
    - active: "true"/"false" (optional) - filter on the active flag
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    active_arg = request.args.get("active")
    active = None
    if active_arg is not None:
        active = active_arg.lower() == "true"
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    return _catalog().list_products(active=active, page=page, per_page=per_page)


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = _catalog().get_product(product_id)
    except ProductNotFound as e:
        return {"error": str(e)}, 404
    return product.to_dict(), 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        created = _catalog().create_product(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StorageError:
        current_app.logger.exception("Failed to create product")
        return {"error": "Failed to create product"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        updated = _catalog().update_product(product_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ProductNotFound as e:
        return {"error": str(e)}, 404
    except StorageError:
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": "Failed to update product"}, 500

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        _catalog().delete_product(product_id)
    except ProductNotFound as e:
        return jsonify({"error": str(e)}), 404
    except StorageError:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Failed to delete product"}), 500

    return "", 204
