# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockdesk/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services.products_service import ProductNotFound
from ..services.sales_service import SaleProcessor, SaleError, SaleNotFound
from ..services.storage_gateway import StorageGateway, StorageError
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


def _processor() -> SaleProcessor:
    return SaleProcessor(StorageGateway(db.session))


def _error(e: Exception, status: int):
    body = {"error": str(e)}
    details = getattr(e, "details", None)
    if details:
        body["details"] = details
    return jsonify(body), status


@sales_bp.post("")
def create_sale_route():
    """
    Record a sale and take its items out of stock.

    Body: sale_date, items[{product_id, quantity, unit_price?}], total,
    payment_method, status, customer (optional).
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = _processor().create_sale(payload)
        return jsonify(sale.to_dict()), 201

    except ValidationError as e:
        # InvalidItemStructure included
        return _error(e, 400)
    except ProductNotFound as e:
        return _error(e, 404)
    except SaleError as e:
        # InsufficientStock
        return _error(e, 400)
    except StorageError:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Failed to create sale"}), 500
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    """
    Query params:
    - status: PENDING | COMPLETED | CANCELLED (optional)
    - page / per_page: optional pagination
    """
    status = request.args.get("status")
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    try:
        result = _processor().list_sales(status=status, page=page, per_page=per_page)
    except ValidationError as e:
        return _error(e, 400)

    return jsonify(result), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = _processor().get_sale(sale_id)
    except SaleNotFound as e:
        return _error(e, 404)

    return jsonify(sale.to_dict()), 200


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Edit a recorded sale. items and total cannot change; setting status to
    CANCELLED returns the stock.
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = _processor().update_sale(sale_id, payload)
        return jsonify(sale.to_dict()), 200

    except ValidationError as e:
        return _error(e, 400)
    except SaleNotFound as e:
        return _error(e, 404)
    except StorageError:
        current_app.logger.exception("Failed to update sale %s", sale_id)
        return jsonify({"error": "Failed to update sale"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
def cancel_sale_route(sale_id: int):
    try:
        sale = _processor().cancel_sale(sale_id)
        return jsonify(sale.to_dict()), 200

    except ValidationError as e:
        return _error(e, 400)
    except SaleNotFound as e:
        return _error(e, 404)
    except StorageError:
        current_app.logger.exception("Failed to cancel sale %s", sale_id)
        return jsonify({"error": "Failed to cancel sale"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    try:
        _processor().delete_sale(sale_id)
    except SaleNotFound as e:
        return _error(e, 404)
    except StorageError:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return jsonify({"error": "Failed to delete sale"}), 500

    return "", 204
