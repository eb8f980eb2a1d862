# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockdesk/routes/auth.py
"""
Sign-in with Google.

The client obtains a Google OAuth2 access token and posts it here. The
token is checked with Google; the user then still needs administrator
approval before this endpoint answers 200.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services.auth_service import AccessApprovalManager, AccessPending
from ..services.identity_provider import InvalidToken, IdentityProviderError
from ..services.storage_gateway import StorageGateway, StorageError


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def get_identity_verifier():
    return current_app.extensions["identity_verifier"]


@auth_bp.post("/google")
def google_sign_in_route():
    data = request.get_json(silent=True) or {}
    token = data.get("token")

    if not token:
        return jsonify({"error": "token required"}), 400

    manager = AccessApprovalManager(StorageGateway(db.session), get_identity_verifier())

    try:
        user = manager.sign_in(token)
        return jsonify({"user": user.to_dict()}), 200

    except InvalidToken:
        return jsonify({"error": "Invalid token"}), 401
    except AccessPending as e:
        return jsonify({
            "error": "Access pending administrator approval",
            "user": e.user.to_dict(),
        }), 403
    except IdentityProviderError:
        current_app.logger.exception("Identity provider unavailable")
        return jsonify({"error": "Identity provider unavailable"}), 502
    except StorageError:
        current_app.logger.exception("Failed to record sign-in")
        return jsonify({"error": "Internal server error"}), 500
