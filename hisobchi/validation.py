from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 999,999,999 minor units
MAX_PRICE_CENTS = 999_999_999

CATEGORY_NAME_MIN = 2
CATEGORY_NAME_MAX = 50

# Sale customer fields, matching the sales table columns
CUSTOMER_NAME_MAX = 255
CUSTOMER_PHONE_MAX = 32


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate phone number)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: web-app (camelCase) keys accepted for a model field
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # bool is a subclass of int; never accept it as a number
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


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
    - a policy allowlist (writable_fields), after resolving aliases
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = {policy.aliases.get(k, k): v for k, v in payload.items()}

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k in policy.required_on_create:
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_int(value: Any, key: str, *, minimum: int | None = None) -> int:
    """Coerce a single request value to int, optionally enforcing a lower bound."""
    if value is None:
        raise ValidationError(f"{key} is required")
    number = _coerce_int(key, value)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return number


def parse_flag(value: Any) -> bool:
    """Query-string style booleans: ?returnStock=true."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_transfer_items(items: Any) -> list[tuple[int, int]]:
    """
    Validate the bulk transfer body: [{"productId": int, "quantity": int > 0}, ...].

    Returns (product_id, quantity) pairs in request order.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = require_int(item.get("productId", item.get("product_id")), f"items[{index}].productId")
        quantity = require_int(item.get("quantity"), f"items[{index}].quantity", minimum=1)
        parsed.append((product_id, quantity))
    return parsed


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("price_cents", "cost_price_cents"):
        if key in patch and patch[key] is not None:
            if patch[key] < 0:
                raise ValidationError(f"{key} must be >= 0")
            if patch[key] > MAX_PRICE_CENTS:
                raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")

    if "price_cents" in patch and not patch["price_cents"]:
        raise ValidationError("price_cents must be > 0")

    if "warehouse_quantity" in patch and patch["warehouse_quantity"] is not None:
        if patch["warehouse_quantity"] < 0:
            raise ValidationError("warehouse_quantity must be >= 0")


def enforce_rules_category(name: Any) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Category name is required")
    cleaned = str(name).strip()
    if len(cleaned) < CATEGORY_NAME_MIN:
        raise ValidationError(f"Category name must be at least {CATEGORY_NAME_MIN} characters")
    if len(cleaned) > CATEGORY_NAME_MAX:
        raise ValidationError(f"Category name cannot exceed {CATEGORY_NAME_MAX} characters")
    return cleaned


def enforce_rules_sale(data: dict) -> dict:
    """
    Shape-check a sale request before any transaction starts.

    Accepts the web-app keys (productId, quantity, price, customerName,
    customerPhone, notes). price is optional and in minor units.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    product_id = require_int(data.get("productId", data.get("product_id")), "productId")
    quantity = require_int(data.get("quantity"), "quantity", minimum=1)

    price = data.get("price", data.get("price_cents"))
    unit_price_cents = None
    if price is not None:
        unit_price_cents = require_int(price, "price", minimum=1)
        if unit_price_cents > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS}")

    customer_name = str(data.get("customerName") or "").strip()
    if len(customer_name) > CUSTOMER_NAME_MAX:
        raise ValidationError(f"customerName exceeds max length {CUSTOMER_NAME_MAX}")
    customer_phone = str(data.get("customerPhone") or "").strip()
    if len(customer_phone) > CUSTOMER_PHONE_MAX:
        raise ValidationError(f"customerPhone exceeds max length {CUSTOMER_PHONE_MAX}")

    return {
        "product_id": product_id,
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
        "customer_name": customer_name,
        "customer_phone": customer_phone,
        "notes": str(data.get("notes") or "").strip(),
    }
