# Overview: Seller <-> product assignment lifecycle (who may hold and sell what).

from __future__ import annotations

import logging

from ..errors import AssignmentNotActive, ProductNotFound
from ..extensions import db
from ..models import Product, SellerProduct
from ..time_utils import utcnow
from .concurrency import run_with_retry, unit_of_work


logger = logging.getLogger(__name__)


def find_assignment(session, seller_id: int, product_id: int) -> SellerProduct | None:
    return session.query(SellerProduct).filter_by(seller_id=seller_id, product_id=product_id).first()


def is_assigned(session, seller_id: int, product_id: int) -> bool:
    row = find_assignment(session, seller_id, product_id)
    return bool(row and row.is_active)


def assign(session, seller_id: int, product_id: int) -> SellerProduct:
    """
    Activate the (seller, product) pair, reusing its row when one exists.

    Already-active rows are returned untouched (assigned_at keeps its value).
    """
    row = find_assignment(session, seller_id, product_id)
    if row is not None:
        if not row.is_active:
            row.is_active = True
            row.assigned_at = utcnow()
            row.unassigned_at = None
            session.flush()
        return row

    row = SellerProduct(seller_id=seller_id, product_id=product_id, is_active=True, assigned_at=utcnow())
    session.add(row)
    # A concurrent creator surfaces here as IntegrityError; run_with_retry
    # reruns the unit of work, which then finds and reuses its row.
    session.flush()
    return row


def unassign(session, seller_id: int, product_id: int) -> SellerProduct:
    """Deactivate an active pair. Stock is the caller's concern."""
    row = find_assignment(session, seller_id, product_id)
    if row is None or not row.is_active:
        raise AssignmentNotActive(
            "Product is not assigned to this seller",
            details={"seller_id": seller_id, "product_id": product_id},
        )
    row.is_active = False
    row.unassigned_at = utcnow()
    session.flush()
    return row


def assign_product(seller_id: int, product_id: int) -> SellerProduct:
    """Validate both ends and assign in its own unit of work."""
    from .seller_service import require_active_seller

    def _op():
        with unit_of_work() as session:
            require_active_seller(session, seller_id)
            if session.get(Product, product_id) is None:
                raise ProductNotFound("Product not found", details={"product_id": product_id})
            row = assign(session, seller_id, product_id)
        logger.info("Assigned product %s to seller %s", product_id, seller_id)
        return row

    return run_with_retry(_op)


def list_assigned_products(seller_id: int, *, active_only: bool = True) -> list[SellerProduct]:
    query = db.session.query(SellerProduct).filter_by(seller_id=seller_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(SellerProduct.assigned_at.desc()).all()
