from __future__ import annotations
import math
from datetime import datetime
from stockdesk.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Float, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidItemStructure(ValidationError):
    """400-level problem with a single sale line item."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - list_fields: writable fields holding a list of strings that are not
      plain columns (serialized by the model itself)
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    list_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_integer(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{key} must be a finite number")
    return number


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return _coerce_integer(col.key, value)

    if isinstance(coltype, Float):
        return _coerce_number(col.key, value)

    # Booleans (JSON true/false, or the 0/1 flags older clients send)
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def _coerce_string_list(key: str, value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list of strings")
    cleaned: list[str] = []
    for entry in value:
        if not isinstance(entry, str):
            raise ValidationError(f"{key} must be a list of strings")
        cleaned.append(entry.strip())
    return cleaned


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    list_fields = policy.list_fields or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in list_fields:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in list_fields:
            patch[k] = _coerce_string_list(k, raw) if raw is not None else []
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("price", "promo_price", "weight", "stock_quantity", "min_stock"):
        value = patch.get(field)
        if value is not None and value < 0:
            raise ValidationError(f"{field} must be >= 0")


def enforce_rules_sale(patch: dict, statuses: tuple[str, ...]) -> None:
    if "status" in patch and patch["status"] not in statuses:
        raise ValidationError(f"status must be one of: {', '.join(statuses)}")

    if patch.get("total") is not None and patch["total"] < 0:
        raise ValidationError("total must be >= 0")


def validate_sale_items(raw_items: Any) -> list[dict]:
    """
    Structural check of the line items of a new sale.

    Each item needs a positive integer product_id and quantity; unit_price
    is optional (None means "use the product's price"). Anything else the
    client sends per line (names, totals) is recomputed server-side.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    cleaned: list[dict] = []
    for position, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidItemStructure(
                f"Item {position} must be an object",
                details={"position": position},
            )

        ids = {}
        for key in ("product_id", "quantity"):
            value = raw.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidItemStructure(
                    f"Item {position}: {key} must be a positive integer",
                    details={"position": position, "field": key},
                )
            ids[key] = value

        unit_price = raw.get("unit_price")
        if unit_price is not None:
            try:
                unit_price = _coerce_number("unit_price", unit_price)
            except ValidationError:
                raise InvalidItemStructure(
                    f"Item {position}: unit_price must be a number",
                    details={"position": position, "field": "unit_price"},
                )
            if unit_price < 0:
                raise InvalidItemStructure(
                    f"Item {position}: unit_price must be >= 0",
                    details={"position": position, "field": "unit_price"},
                )

        cleaned.append({
            "product_id": ids["product_id"],
            "quantity": ids["quantity"],
            "unit_price": unit_price,
        })

    return cleaned
