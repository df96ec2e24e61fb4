# hisobchi/services/seller_service.py
"""
Seller accounts and seller stock views.

Sellers are Users with role="seller". Admins create, edit and soft-delete
them; a seller who still holds stock cannot be deleted until it is returned.
"""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import SellerNotFound, StockStillHeld
from ..extensions import db
from ..models import Product, SellerProduct, SellerStock, User
from ..models.auth import ROLE_SELLER
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .concurrency import run_with_retry, unit_of_work


logger = logging.getLogger(__name__)


SELLER_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "phone_number", "username", "telegram_id", "avatar_url"},
    required_on_create={"first_name", "phone_number"},
    aliases={
        "firstName": "first_name",
        "lastName": "last_name",
        "phoneNumber": "phone_number",
        "telegramId": "telegram_id",
        "avatarUrl": "avatar_url",
    },
)

SELLER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=SELLER_POLICY.writable_fields | {"is_active"},
    aliases={**SELLER_POLICY.aliases, "isActive": "is_active"},
)


def get_seller(session, seller_id: int) -> User:
    """Any seller row, deleted or not."""
    seller = session.get(User, seller_id)
    if seller is None or seller.role != ROLE_SELLER:
        raise SellerNotFound("Seller not found", details={"seller_id": seller_id})
    return seller


def require_active_seller(session, seller_id: int) -> User:
    seller = get_seller(session, seller_id)
    if not seller.is_active or seller.is_deleted:
        raise SellerNotFound("Seller not found or inactive", details={"seller_id": seller_id})
    return seller


def _ensure_unique(session, patch: dict, *, exclude_id: int | None = None) -> None:
    for key, label in (("phone_number", "Phone number"), ("telegram_id", "Telegram id")):
        value = patch.get(key)
        if not value:
            continue
        query = session.query(User.id).filter(getattr(User, key) == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError(f"{label} already registered")


def list_sellers(include_deleted: bool = False) -> list[User]:
    query = db.session.query(User).filter(User.role == ROLE_SELLER)
    if not include_deleted:
        query = query.filter(User.is_deleted.is_(False))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def create_seller(payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=SELLER_POLICY, partial=False)

    def _op():
        with unit_of_work() as session:
            _ensure_unique(session, patch)
            seller = User(role=ROLE_SELLER, **patch)
            session.add(seller)
            try:
                session.flush()
            except IntegrityError:
                raise ConflictError("Phone number or Telegram id already registered")
        logger.info("Created seller %s", seller.id)
        return seller

    return run_with_retry(_op)


def update_seller(seller_id: int, payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=SELLER_UPDATE_POLICY, partial=True)

    def _op():
        with unit_of_work() as session:
            seller = get_seller(session, seller_id)
            if seller.is_deleted:
                raise SellerNotFound("Seller not found", details={"seller_id": seller_id})
            _ensure_unique(session, patch, exclude_id=seller.id)
            for key, value in patch.items():
                setattr(seller, key, value)
            try:
                session.flush()
            except IntegrityError:
                raise ConflictError("Phone number or Telegram id already registered")
        return seller

    return run_with_retry(_op)


def total_held(session, seller_id: int) -> int:
    total = (
        session.query(func.coalesce(func.sum(SellerStock.quantity), 0))
        .filter(SellerStock.seller_id == seller_id)
        .scalar()
    )
    return int(total or 0)


def soft_delete_seller(seller_id: int) -> User:
    """
    Mark a seller deleted and inactive, closing their assignments.

    Refused with StockStillHeld while any seller stock row is non-zero.
    """
    def _op():
        with unit_of_work() as session:
            seller = get_seller(session, seller_id)
            held = total_held(session, seller_id)
            if held > 0:
                raise StockStillHeld(
                    f"Seller still holds {held} units; return all stock before deleting",
                    details={"seller_id": seller_id, "current_stock": held},
                )
            seller.is_active = False
            seller.is_deleted = True
            # Local import avoids a cycle: assignment_service imports this module.
            from .assignment_service import unassign
            active_rows = (
                session.query(SellerProduct)
                .filter_by(seller_id=seller_id, is_active=True)
                .all()
            )
            for row in active_rows:
                unassign(session, seller_id, row.product_id)
            session.flush()
        logger.info("Soft-deleted seller %s", seller_id)
        return seller

    return run_with_retry(_op)


# =============================================================================
# STOCK VIEWS
# =============================================================================

def list_seller_stocks() -> list[SellerStock]:
    return (
        db.session.query(SellerStock)
        .order_by(SellerStock.seller_id.asc(), SellerStock.product_id.asc())
        .all()
    )


def stocks_for_seller(seller_id: int) -> list[SellerStock]:
    get_seller(db.session, seller_id)
    return (
        db.session.query(SellerStock)
        .filter(SellerStock.seller_id == seller_id)
        .order_by(SellerStock.product_id.asc())
        .all()
    )


def stocks_for_product(product_id: int) -> list[SellerStock]:
    return (
        db.session.query(SellerStock)
        .filter(SellerStock.product_id == product_id)
        .order_by(SellerStock.seller_id.asc())
        .all()
    )


def stock_for_product(seller_id: int, product_id: int) -> dict:
    """A seller's view of one product: assignment flag and quantity held (0 when none)."""
    stock = (
        db.session.query(SellerStock)
        .filter_by(seller_id=seller_id, product_id=product_id)
        .first()
    )
    assignment = (
        db.session.query(SellerProduct)
        .filter_by(seller_id=seller_id, product_id=product_id)
        .first()
    )
    return {
        "seller_id": seller_id,
        "product_id": product_id,
        "is_assigned": bool(assignment and assignment.is_active),
        "quantity": stock.quantity if stock else 0,
        "last_transfer_date": stock.to_dict()["last_transfer_date"] if stock else None,
    }


def active_stock_summary(seller_id: int) -> dict:
    """
    Stock held for each actively assigned product, plus totals.

    total_stock_value_cents is valued at cost price.
    """
    rows = (
        db.session.query(SellerProduct, Product, SellerStock)
        .join(Product, Product.id == SellerProduct.product_id)
        .outerjoin(
            SellerStock,
            (SellerStock.seller_id == SellerProduct.seller_id)
            & (SellerStock.product_id == SellerProduct.product_id),
        )
        .filter(SellerProduct.seller_id == seller_id, SellerProduct.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    items = []
    total_quantity = 0
    total_value = 0
    for assignment, product, stock in rows:
        quantity = stock.quantity if stock else 0
        total_quantity += quantity
        total_value += quantity * (product.cost_price_cents or 0)
        items.append({
            "stock_id": stock.id if stock else None,
            "product": product.to_dict(),
            "quantity": quantity,
            "assigned_at": assignment.to_dict()["assigned_at"],
        })

    return {
        "items": items,
        "summary": {
            "total_products": len(items),
            "total_quantity": total_quantity,
            "total_stock_value_cents": total_value,
        },
    }
