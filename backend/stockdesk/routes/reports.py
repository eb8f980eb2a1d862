from flask import Blueprint, jsonify, request, current_app

from ..extensions import db
from ..services.reporting_service import ReportingEngine, ReportError
from ..services.storage_gateway import StorageGateway


reports_bp = Blueprint("reports", __name__, url_prefix="/reports")


def _engine() -> ReportingEngine:
    return ReportingEngine(StorageGateway(db.session))


@reports_bp.get("/products/low-stock")
def low_stock_report():
    try:
        return jsonify(_engine().low_stock()), 200
    except Exception:
        current_app.logger.exception("Failed to build low-stock report")
        return jsonify({"error": "Failed to build low-stock report"}), 500


@reports_bp.get("/sales/by-status")
def sales_by_status_report():
    try:
        return jsonify(_engine().sales_by_status()), 200
    except Exception:
        current_app.logger.exception("Failed to build sales-by-status report")
        return jsonify({"error": "Failed to build sales-by-status report"}), 500


@reports_bp.get("/sales/period")
def sales_period_report():
    start = request.args.get("startDate")
    end = request.args.get("endDate")

    try:
        report = _engine().sales_in_period(start, end)
        return jsonify(report), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales period report")
        return jsonify({"error": "Failed to build sales period report"}), 500
