# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# hisobchi/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require a known Telegram user.
- Listing and writes are admin-only
- Reading a single product is open to sellers (their web-app shows it)
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..errors import StockError
from ..extensions import db
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_flag,
    require_int,
    ValidationError,
)

PRODUCT_ALIASES = {
    "price": "price_cents",
    "costPrice": "cost_price_cents",
    "category": "category_id",
    "categoryId": "category_id",
    "warehouseQuantity": "warehouse_quantity",
    "stock": "warehouse_quantity",
    "isActive": "is_active",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "sku", "color", "image",
        "price_cents", "cost_price_cents", "category_id",
        "warehouse_quantity", "is_active",
    },
    required_on_create={"name", "price_cents", "category_id"},
    aliases=PRODUCT_ALIASES,
)

# Warehouse stock is never overwritten by an edit; use /restock or transfers.
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"warehouse_quantity"},
    aliases=PRODUCT_ALIASES,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_admin
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - category: int (optional) - category id
    - name: str (optional) - case-insensitive substring
    - active: bool (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    category_id = request.args.get("category", type=int)
    name = request.args.get("name")
    active = request.args.get("active")
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    result = products_service.list_products(
        category_id=category_id,
        name=name,
        is_active=parse_flag(active) if active is not None else None,
        page=page,
        per_page=per_page,
    )
    return jsonify(result)


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify(product.to_dict(include=("category",)))
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a new product.

    warehouse_quantity (or "stock") is the quantity put into the warehouse.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
        return jsonify(created), 201
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
        return jsonify(updated)
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_admin
def restock_product_route(product_id: int):
    """
    Add newly received units to the warehouse.

    Request body:
    {
        "quantity": int (> 0)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = require_int(data.get("quantity"), "quantity", minimum=1)
        return jsonify(products_service.restock(product_id, quantity))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to restock product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Deactivate a product; history keeps pointing at it."""
    try:
        return jsonify(products_service.delete_product(product_id=product_id))
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
