# Overview: Request decorators for API routes.

import hmac
from functools import wraps
from flask import request, jsonify, current_app


def require_admin_key(f):
    """
    Guard administrative routes with a shared key.

    The caller must send X-Admin-Key equal to the ADMIN_API_KEY setting.
    When ADMIN_API_KEY is not configured the routes are open, which is only
    meant for local development.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_KEY")
        if expected:
            provided = request.headers.get("X-Admin-Key", "")
            if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
                current_app.logger.warning(
                    "Rejected admin request to %s from %s", request.path, request.remote_addr
                )
                return jsonify({"error": "Admin key required"}), 401

        return f(*args, **kwargs)

    return decorated_function
