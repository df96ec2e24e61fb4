# hisobchi/routes/admin.py
"""
Admin routes: sellers, assignments and seller stock overrides.

SECURITY: every route requires an authenticated admin.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..errors import StockError
from ..extensions import db
from ..services import assignment_service, seller_service, transfer_service
from ..validation import ValidationError, ConflictError, parse_flag, require_int


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _internal_error(action: str):
    db.session.rollback()
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SELLERS
# =============================================================================

@admin_bp.get("/sellers")
@require_auth
@require_admin
def list_sellers():
    """List sellers. ?includeDeleted=true also returns soft-deleted ones."""
    include_deleted = parse_flag(request.args.get("includeDeleted"))
    sellers = seller_service.list_sellers(include_deleted=include_deleted)
    return jsonify({"items": [s.to_dict() for s in sellers], "count": len(sellers)})


@admin_bp.post("/sellers")
@require_auth
@require_admin
def create_seller():
    """
    Register a seller.

    Request body:
    {
        "firstName": str,
        "phoneNumber": str (unique),
        "lastName": str (optional),
        "username": str (optional),
        "telegramId": str (optional, unique)
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        seller = seller_service.create_seller(payload)
        return jsonify(seller.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        return _internal_error("create seller")


@admin_bp.get("/sellers/<int:seller_id>")
@require_auth
@require_admin
def get_seller(seller_id: int):
    try:
        return jsonify(seller_service.get_seller(db.session, seller_id).to_dict())
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code


@admin_bp.put("/sellers/<int:seller_id>")
@require_auth
@require_admin
def update_seller(seller_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        seller = seller_service.update_seller(seller_id, payload)
        return jsonify(seller.to_dict())
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        return _internal_error(f"update seller {seller_id}")


@admin_bp.delete("/sellers/<int:seller_id>")
@require_auth
@require_admin
def delete_seller(seller_id: int):
    """Soft-delete; refused while the seller still holds stock."""
    try:
        seller = seller_service.soft_delete_seller(seller_id)
        return jsonify(seller.to_dict())
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error(f"delete seller {seller_id}")


# =============================================================================
# ASSIGNMENTS
# =============================================================================

@admin_bp.get("/sellers/<int:seller_id>/products")
@require_auth
@require_admin
def list_seller_products(seller_id: int):
    try:
        seller_service.get_seller(db.session, seller_id)
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code

    rows = assignment_service.list_assigned_products(seller_id)
    return jsonify({"items": [r.to_dict(include=("product",)) for r in rows], "count": len(rows)})


@admin_bp.post("/sellers/<int:seller_id>/products/<int:product_id>")
@require_auth
@require_admin
def assign_product(seller_id: int, product_id: int):
    """
    Assign a product to a seller.

    Request body (optional):
    {
        "quantity": int (> 0) - also send this many units from the warehouse
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        if data.get("quantity") is not None:
            quantity = require_int(data.get("quantity"), "quantity", minimum=1)
            transfers = transfer_service.transfer_to_seller(
                seller_id,
                [(product_id, quantity)],
                actor_user_id=g.current_user.id,
            )
            assignment = assignment_service.find_assignment(db.session, seller_id, product_id)
            return jsonify({
                "assignment": assignment.to_dict(),
                "transfers": [t.to_dict() for t in transfers],
            }), 201

        assignment = assignment_service.assign_product(seller_id, product_id)
        return jsonify({"assignment": assignment.to_dict(), "transfers": []}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error(f"assign product {product_id} to seller {seller_id}")


@admin_bp.delete("/sellers/<int:seller_id>/products/<int:product_id>")
@require_auth
@require_admin
def unassign_product(seller_id: int, product_id: int):
    """
    Unassign a product from a seller.

    Query params:
    - returnStock: bool - send any held stock back to the warehouse first.
      Without it, a seller holding stock cannot be unassigned.
    """
    return_stock = parse_flag(request.args.get("returnStock"))

    try:
        result = transfer_service.unassign_product(
            seller_id,
            product_id,
            return_stock=return_stock,
            actor_user_id=g.current_user.id,
        )
        transfer = result["transfer"]
        return jsonify({
            "stock_returned": result["stock_returned"],
            "transfer": transfer.to_dict() if transfer is not None else None,
        })
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error(f"unassign product {product_id} from seller {seller_id}")


# =============================================================================
# SELLER STOCKS
# =============================================================================

@admin_bp.get("/seller-stocks")
@require_auth
@require_admin
def list_seller_stocks():
    stocks = seller_service.list_seller_stocks()
    return jsonify({"items": [s.to_dict(include=("product", "seller")) for s in stocks], "count": len(stocks)})


@admin_bp.get("/sellers/<int:seller_id>/stocks")
@require_auth
@require_admin
def seller_stocks(seller_id: int):
    try:
        stocks = seller_service.stocks_for_seller(seller_id)
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"items": [s.to_dict(include=("product",)) for s in stocks], "count": len(stocks)})


@admin_bp.get("/products/<int:product_id>/stocks")
@require_auth
@require_admin
def product_stocks(product_id: int):
    stocks = seller_service.stocks_for_product(product_id)
    return jsonify({"items": [s.to_dict(include=("seller",)) for s in stocks], "count": len(stocks)})


@admin_bp.patch("/seller-stocks/<int:stock_id>")
@require_auth
@require_admin
def set_seller_stock(stock_id: int):
    """
    Set a seller stock row to an exact quantity.

    The difference is moved from/to the warehouse and recorded as a transfer.

    Request body:
    {
        "quantity": int (>= 0)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = require_int(data.get("quantity"), "quantity", minimum=0)
        result = transfer_service.set_seller_stock_quantity(
            stock_id,
            quantity,
            actor_user_id=g.current_user.id,
        )
        return jsonify(result)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error(f"set seller stock {stock_id}")


@admin_bp.delete("/seller-stocks/<int:stock_id>")
@require_auth
@require_admin
def delete_seller_stock(stock_id: int):
    """
    Return everything in a seller stock row to the warehouse and remove it.

    Query params:
    - unassign: bool - also unassign the product from the seller
    """
    unassign = parse_flag(request.args.get("unassign"))

    try:
        result = transfer_service.delete_seller_stock(
            stock_id,
            unassign=unassign,
            actor_user_id=g.current_user.id,
        )
        return jsonify(result)
    except StockError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        return _internal_error(f"delete seller stock {stock_id}")
