# hisobchi/services/products_service.py
"""
Product catalog service.

warehouse_quantity is only written here on creation and through restock();
updates never touch it. Everything else that moves warehouse stock goes
through transfer_service.
"""
from __future__ import annotations

import logging

from ..errors import CategoryNotFound, ProductNotFound
from ..extensions import db
from ..models import Category, Product
from . import ledger_service
from .concurrency import run_with_retry, unit_of_work


logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "sku", "color", "image",
    "price_cents", "cost_price_cents", "category_id", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _require_category(session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound("Category not found", details={"category_id": category_id})
    return category


def list_products(
    category_id: int | None = None,
    name: str | None = None,
    is_active: bool | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Args:
        category_id: Only products in this category
        name: Case-insensitive substring match on the product name
        is_active: Only active (True) or inactive (False) products
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if name:
        base_query = base_query.filter(Product.name.ilike(f"%{_escape_like(name.strip())}%", escape="\\"))
    if is_active is not None:
        base_query = base_query.filter(Product.is_active.is_(is_active))
    base_query = base_query.order_by(Product.created_at.desc(), Product.id.desc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    return p


def create_product(*, patch: dict) -> dict:
    """
    Create a product from a validated patch dict.

    warehouse_quantity in the patch is the stock being introduced.
    """
    def _op():
        with unit_of_work() as session:
            _require_category(session, patch["category_id"])
            p = Product(warehouse_quantity=patch.get("warehouse_quantity") or 0)
            apply_product_patch(p, patch)
            session.add(p)
            session.flush()
        logger.info("Created product %s with %s units in warehouse", p.id, p.warehouse_quantity)
        return p.to_dict()

    return run_with_retry(_op)


def update_product(*, product_id: int, patch: dict) -> dict:
    def _op():
        with unit_of_work() as session:
            p = session.get(Product, product_id)
            if p is None:
                raise ProductNotFound("Product not found", details={"product_id": product_id})
            if "category_id" in patch:
                _require_category(session, patch["category_id"])
            apply_product_patch(p, patch)
            session.flush()
        return p.to_dict()

    return run_with_retry(_op)


def restock(product_id: int, amount: int) -> dict:
    """Introduce new stock into the warehouse."""
    def _op():
        with unit_of_work() as session:
            ledger_service.increase_warehouse(session, product_id, amount)
        p = get_product(product_id)
        logger.info("Restocked product %s by %s (warehouse now %s)", product_id, amount, p.warehouse_quantity)
        return p.to_dict()

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> dict:
    """
    Soft-delete a product.

    Transfers, sales and seller stocks keep referencing it, so the row stays
    and is only deactivated.
    """
    def _op():
        with unit_of_work() as session:
            p = session.get(Product, product_id)
            if p is None:
                raise ProductNotFound("Product not found", details={"product_id": product_id})
            if p.is_active:
                p.is_active = False
                session.flush()
        logger.info("Deactivated product %s", product_id)
        return p.to_dict()

    return run_with_retry(_op)
