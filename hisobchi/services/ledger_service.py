# Overview: Atomic counter primitives for seller stock and warehouse quantity.

"""
Every mutation here is a single conditional UPDATE whose WHERE clause carries
the precondition (row exists, enough quantity on hand). Two concurrent
decrements against the same row can therefore never both succeed when their
sum exceeds the stored quantity: the loser matches zero rows and gets a
domain error instead of a negative balance.

All functions take the unit-of-work session explicitly and never commit.
"""

from __future__ import annotations

from sqlalchemy import update

from ..errors import (
    InsufficientStock,
    InsufficientWarehouseStock,
    InvalidAmount,
    ProductNotFound,
    StockRecordNotFound,
)
from ..models import Product, SellerStock
from ..time_utils import utcnow


def _require_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(
            f"Amount must be a positive integer, got {amount!r}",
            details={"amount": amount},
        )
    return amount


def _stock_filter(seller_id=None, product_id=None, stock_id=None) -> tuple:
    """Build the row filter for one call; stock_id wins when given."""
    if stock_id is not None:
        return (SellerStock.id == stock_id,)
    if seller_id is None or product_id is None:
        raise ValueError("Either stock_id or both seller_id and product_id are required")
    return (SellerStock.seller_id == seller_id, SellerStock.product_id == product_id)


def _target_details(seller_id, product_id, stock_id) -> dict:
    if stock_id is not None:
        return {"stock_id": stock_id}
    return {"seller_id": seller_id, "product_id": product_id}


def find_stock(session, seller_id: int, product_id: int) -> SellerStock | None:
    return session.query(SellerStock).filter_by(seller_id=seller_id, product_id=product_id).first()


def current_quantity(session, *, seller_id=None, product_id=None, stock_id=None) -> int:
    """On-hand quantity for the targeted row, 0 when the row does not exist."""
    qty = session.query(SellerStock.quantity).filter(*_stock_filter(seller_id, product_id, stock_id)).scalar()
    return int(qty or 0)


def get_or_create_stock(session, seller_id: int, product_id: int) -> SellerStock:
    """
    Return the (seller, product) stock row, creating it with quantity 0 if missing.

    A concurrent creator makes the flush fail with IntegrityError; the whole
    unit of work is then rolled back and rerun by run_with_retry.
    """
    stock = find_stock(session, seller_id, product_id)
    if stock:
        return stock

    stock = SellerStock(seller_id=seller_id, product_id=product_id, quantity=0)
    session.add(stock)
    session.flush()
    return stock


def increase(session, *, amount, seller_id=None, product_id=None, stock_id=None) -> None:
    """quantity += amount on an existing row; StockRecordNotFound when there is none."""
    amount = _require_amount(amount)
    stmt = (
        update(SellerStock)
        .where(*_stock_filter(seller_id, product_id, stock_id))
        .values(quantity=SellerStock.quantity + amount, last_transfer_date=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    result = session.execute(stmt)
    if not result.rowcount:
        raise StockRecordNotFound(
            "Seller stock record not found",
            details=_target_details(seller_id, product_id, stock_id),
        )


def decrease(session, *, amount, seller_id=None, product_id=None, stock_id=None) -> None:
    """
    quantity -= amount only if quantity >= amount.

    A missing row and a short row both fail with InsufficientStock; available
    is reported as 0 for a missing row.
    """
    amount = _require_amount(amount)
    row_filter = _stock_filter(seller_id, product_id, stock_id)
    stmt = (
        update(SellerStock)
        .where(*row_filter, SellerStock.quantity >= amount)
        .values(quantity=SellerStock.quantity - amount, last_transfer_date=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    result = session.execute(stmt)
    if not result.rowcount:
        available = current_quantity(session, seller_id=seller_id, product_id=product_id, stock_id=stock_id)
        details = _target_details(seller_id, product_id, stock_id)
        details.update({"requested": amount, "available": available})
        raise InsufficientStock(
            f"Cannot decrease by {amount}, only {available} available",
            details=details,
        )


def increase_warehouse(session, product_id: int, amount) -> None:
    amount = _require_amount(amount)
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            warehouse_quantity=Product.warehouse_quantity + amount,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session="fetch")
    )
    result = session.execute(stmt)
    if not result.rowcount:
        raise ProductNotFound("Product not found", details={"product_id": product_id})


def decrease_warehouse(session, product_id: int, amount) -> None:
    """warehouse_quantity -= amount only if enough is left in the warehouse."""
    amount = _require_amount(amount)
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.warehouse_quantity >= amount)
        .values(
            warehouse_quantity=Product.warehouse_quantity - amount,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session="fetch")
    )
    result = session.execute(stmt)
    if result.rowcount:
        return

    available = session.query(Product.warehouse_quantity).filter(Product.id == product_id).scalar()
    if available is None:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    raise InsufficientWarehouseStock(
        f"Insufficient warehouse stock: requested {amount}, only {available} available",
        details={"product_id": product_id, "requested": amount, "available": int(available)},
    )
