# hisobchi/routes/sales.py
"""
Sale recording and history.

Sellers record sales against their own stock. Admins may read every sale;
sellers only see their own.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_seller
from ..errors import StockError
from ..extensions import db
from ..services import sales_service
from ..validation import ValidationError, enforce_rules_sale


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_seller
def create_sale():
    """
    Record a sale for the calling seller.

    Request body:
    {
        "productId": int,
        "quantity": int (> 0),
        "price": int (optional, minor units; defaults to product price),
        "customerName": str (optional),
        "customerPhone": str (optional),
        "notes": str (optional)
    }

    Returns:
        201: Sale recorded, stock debited
        400: Invalid input or not enough stock (nothing recorded)
        403: Product not assigned to this seller
        404: Product not found
    """
    data = request.get_json(silent=True) or {}

    try:
        fields = enforce_rules_sale(data)
        sale = sales_service.record_sale(g.current_user.id, **fields)
        return jsonify(sale.to_dict(include=("product",))), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_role("admin", "seller")
def list_sales():
    """
    Query params:
    - sellerId: int (admin only)
    - startDate, endDate: YYYY-MM-DD, both inclusive
    """
    if g.current_user.is_admin:
        seller_id = request.args.get("sellerId", type=int)
    else:
        seller_id = g.current_user.id

    try:
        sales = sales_service.list_sales(
            seller_id=seller_id,
            start=request.args.get("startDate"),
            end=request.args.get("endDate"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    total = sum(s.total_amount_cents for s in sales)
    return jsonify({
        "items": [s.to_dict(include=("product",)) for s in sales],
        "count": len(sales),
        "total_amount_cents": total,
    })


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_role("admin", "seller")
def get_sale(sale_id: int):
    seller_id = None if g.current_user.is_admin else g.current_user.id
    try:
        sale = sales_service.get_sale(sale_id, seller_id=seller_id)
        return jsonify(sale.to_dict(include=("product", "seller")))
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
