# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/stockdesk/routes/admin.py
"""
Admin routes for the user approval queue.

All endpoints are guarded by @require_admin_key.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services.auth_service import AccessApprovalManager, UserNotFound
from ..services.storage_gateway import StorageGateway, StorageError
from ..validation import ValidationError
from ..decorators import require_admin_key

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _manager() -> AccessApprovalManager:
    # Deciding never verifies tokens, so no identity verifier is needed
    return AccessApprovalManager(StorageGateway(db.session), verifier=None)


@admin_bp.get("/users/pending")
@require_admin_key
def list_pending_users():
    try:
        users = _manager().list_pending()
    except Exception:
        current_app.logger.exception("Failed to list pending users")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [u.to_dict() for u in users],
        "count": len(users),
    }), 200


@admin_bp.post("/users/decide")
@require_admin_key
def decide_user():
    """
    Approve or reject a pending user.

    Body: {"user_id": "..."} or {"email": "..."}, plus
    {"decision": "approve" | "reject"}
    """
    data = request.get_json(silent=True) or {}

    try:
        user = _manager().decide(
            decision=data.get("decision"),
            user_id=data.get("user_id"),
            email=data.get("email"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserNotFound as e:
        return jsonify({"error": str(e)}), 404
    except StorageError:
        current_app.logger.exception("Failed to record decision")
        return jsonify({"error": "Internal server error"}), 500

    if user is None:
        return jsonify({"decision": "reject", "deleted": True}), 200
    return jsonify({"decision": "approve", "user": user.to_dict()}), 200
