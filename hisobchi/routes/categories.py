# Overview: Flask API routes for product categories.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..errors import StockError
from ..extensions import db
from ..services import category_service
from ..validation import ValidationError, ConflictError


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories():
    """List all categories by name (any signed-in user)."""
    categories = category_service.list_categories()
    return jsonify({"items": [c.to_dict() for c in categories], "count": len(categories)})


@categories_bp.get("/<int:category_id>")
@require_auth
def get_category(category_id: int):
    try:
        return jsonify(category_service.get_category(category_id).to_dict())
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code


@categories_bp.post("")
@require_auth
@require_admin
def create_category():
    """
    Create a category.

    Request body:
    {
        "name": str (2..50 chars, unique)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        category = category_service.create_category(data.get("name"))
        return jsonify(category.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<int:category_id>")
@require_auth
@require_admin
def rename_category(category_id: int):
    data = request.get_json(silent=True) or {}

    try:
        category = category_service.rename_category(category_id, data.get("name"))
        return jsonify(category.to_dict())
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update category %s", category_id)
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_admin
def delete_category(category_id: int):
    try:
        category_service.delete_category(category_id)
        return jsonify({"deleted": True})
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete category %s", category_id)
        return jsonify({"error": "Internal server error"}), 500
