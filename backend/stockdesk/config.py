# backend/stockdesk/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Reports: active products at or below this quantity are "low stock"
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    # Allowed drift between a sale's declared total and the sum of its lines
    SALE_TOTAL_TOLERANCE = float(os.environ.get("SALE_TOTAL_TOLERANCE", "0.01"))

    GOOGLE_USERINFO_URL = os.environ.get(
        "GOOGLE_USERINFO_URL",
        "https://www.googleapis.com/oauth2/v3/userinfo",
    )
    GOOGLE_HTTP_TIMEOUT = float(os.environ.get("GOOGLE_HTTP_TIMEOUT", "5"))

    # Unset means the admin routes are open (local development only)
    ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY")
