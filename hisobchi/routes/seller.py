# hisobchi/routes/seller.py
"""
Seller self-service: what I may sell, what I hold, what I sold.
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_seller
from ..services import assignment_service, sales_service, seller_service
from ..validation import ValidationError


seller_bp = Blueprint("seller", __name__, url_prefix="/api/seller")


@seller_bp.get("/products")
@require_auth
@require_seller
def my_products():
    rows = assignment_service.list_assigned_products(g.current_user.id)
    return jsonify({"items": [r.to_dict(include=("product",)) for r in rows], "count": len(rows)})


@seller_bp.get("/stocks")
@require_auth
@require_seller
def my_stocks():
    """Stock held per assigned product with totals (quantity, value at cost)."""
    return jsonify(seller_service.active_stock_summary(g.current_user.id))


@seller_bp.get("/stocks/product/<int:product_id>")
@require_auth
@require_seller
def my_stock_for_product(product_id: int):
    return jsonify(seller_service.stock_for_product(g.current_user.id, product_id))


@seller_bp.get("/sales")
@require_auth
@require_seller
def my_sales():
    """Query params: startDate, endDate (YYYY-MM-DD, inclusive)."""
    try:
        sales = sales_service.list_sales(
            seller_id=g.current_user.id,
            start=request.args.get("startDate"),
            end=request.args.get("endDate"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [s.to_dict(include=("product",)) for s in sales],
        "count": len(sales),
        "total_quantity": sum(s.quantity for s in sales),
        "total_amount_cents": sum(s.total_amount_cents for s in sales),
    })
