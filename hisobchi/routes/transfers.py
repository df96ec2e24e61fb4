# hisobchi/routes/transfers.py
"""
Warehouse <-> seller transfer API routes (admin only).
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..errors import StockError
from ..extensions import db
from ..services import transfer_service
from ..validation import ValidationError, parse_transfer_items, require_int


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_auth
@require_admin
def create_transfer():
    """
    Send stock from the warehouse to a seller.

    Request body:
    {
        "sellerId": int,
        "items": [{"productId": int, "quantity": int}, ...]
    }

    Returns:
        201: Transfers created (one per item)
        400: Invalid request or not enough warehouse stock (nothing applied)
        404: Seller or product not found
    """
    data = request.get_json(silent=True) or {}

    try:
        seller_id = require_int(data.get("sellerId", data.get("seller_id")), "sellerId")
        items = parse_transfer_items(data.get("items"))
        transfers = transfer_service.transfer_to_seller(seller_id, items, actor_user_id=g.current_user.id)
        return jsonify({"items": [t.to_dict() for t in transfers], "count": len(transfers)}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/return", methods=["POST"])
@require_auth
@require_admin
def return_stock():
    """
    Move stock from a seller back to the warehouse.

    Request body:
    {
        "sellerId": int,
        "productId": int,
        "quantity": int
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        seller_id = require_int(data.get("sellerId", data.get("seller_id")), "sellerId")
        product_id = require_int(data.get("productId", data.get("product_id")), "productId")
        quantity = require_int(data.get("quantity"), "quantity", minimum=1)
        transfer = transfer_service.return_from_seller(
            seller_id,
            product_id,
            quantity,
            actor_user_id=g.current_user.id,
        )
        return jsonify(transfer.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to return stock")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("/<int:transfer_id>/return", methods=["POST"])
@require_auth
@require_admin
def return_against_transfer(transfer_id: int):
    """
    Return all or part of an earlier transfer.

    Request body (optional):
    {
        "quantity": int - defaults to everything not yet returned
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = None
        if data.get("quantity") is not None:
            quantity = require_int(data.get("quantity"), "quantity", minimum=1)
        transfer = transfer_service.return_transfer(transfer_id, quantity, actor_user_id=g.current_user.id)
        return jsonify(transfer.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to return transfer %s", transfer_id)
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.route("", methods=["GET"])
@require_auth
@require_admin
def list_transfers():
    """
    List transfers, newest first.

    Query params: sellerId, productId, type (transfer|return), limit (default 100, max 500)
    """
    seller_id = request.args.get("sellerId", type=int)
    product_id = request.args.get("productId", type=int)
    transfer_type = request.args.get("type")
    limit = min(request.args.get("limit", default=100, type=int), 500)

    try:
        transfers = transfer_service.list_transfers(
            seller_id=seller_id,
            product_id=product_id,
            type=transfer_type,
            limit=limit,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [t.to_dict(include=("product", "seller")) for t in transfers], "count": len(transfers)})


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_auth
@require_admin
def get_transfer(transfer_id: int):
    try:
        transfer = transfer_service.get_transfer(transfer_id)
        return jsonify(transfer.to_dict(include=("product", "seller")))
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
