# Overview: Seller sales; each sale debits seller stock in the same transaction.

from __future__ import annotations

import logging

from ..errors import InsufficientStock, InvalidAmount, NotAssigned, ProductNotFound, SaleNotFound
from ..extensions import db
from ..models import Product, Sale
from ..time_utils import day_range
from ..validation import ValidationError
from . import assignment_service, ledger_service
from .concurrency import run_with_retry, unit_of_work
from .seller_service import require_active_seller


logger = logging.getLogger(__name__)


def record_sale(
    seller_id: int,
    product_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
    customer_name: str = "",
    customer_phone: str = "",
    notes: str = "",
) -> Sale:
    """
    Record a sale and debit the seller's stock atomically.

    Checks, in order: quantity, seller, product, active assignment, then an
    advisory stock check for a fast, readable failure. The conditional
    decrement inside the transaction is what actually guards the balance; if
    another request drained the stock in between, it raises
    InsufficientStock and the Sale insert is rolled back with it.

    unit_price_cents defaults to the product's current price.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidAmount("quantity must be a positive integer", details={"quantity": quantity})
    if unit_price_cents is not None and (
        isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int) or unit_price_cents <= 0
    ):
        raise InvalidAmount("price must be a positive integer", details={"price": unit_price_cents})

    def _op():
        with unit_of_work() as session:
            require_active_seller(session, seller_id)

            product = session.get(Product, product_id)
            if product is None:
                raise ProductNotFound("Product not found", details={"product_id": product_id})

            if not assignment_service.is_assigned(session, seller_id, product_id):
                raise NotAssigned(
                    "Product is not assigned to this seller",
                    details={"seller_id": seller_id, "product_id": product_id},
                )

            available = ledger_service.current_quantity(session, seller_id=seller_id, product_id=product_id)
            if available < quantity:
                raise InsufficientStock(
                    f"Cannot sell {quantity}, only {available} available",
                    details={
                        "seller_id": seller_id,
                        "product_id": product_id,
                        "requested": quantity,
                        "available": available,
                    },
                )

            price = unit_price_cents if unit_price_cents is not None else product.price_cents
            sale = Sale(
                seller_id=seller_id,
                product_id=product_id,
                quantity=quantity,
                unit_price_cents=price,
                total_amount_cents=quantity * price,
                customer_name=customer_name or None,
                customer_phone=customer_phone or None,
                notes=notes or None,
            )
            session.add(sale)
            session.flush()

            ledger_service.decrease(session, amount=quantity, seller_id=seller_id, product_id=product_id)

        logger.info(
            "Stock sale: seller=%s product=%s quantity=%s sale=%s",
            seller_id, product_id, quantity, sale.id,
        )
        return sale

    return run_with_retry(_op)


def list_sales(seller_id: int | None = None, start: str | None = None, end: str | None = None) -> list[Sale]:
    """
    Sales newest first, optionally for one seller and a YYYY-MM-DD range.

    Both bounds are whole days: end=2024-01-31 includes sales on the 31st.
    """
    try:
        start_dt, end_dt = day_range(start, end)
    except ValueError:
        raise ValidationError("startDate and endDate must be YYYY-MM-DD")

    query = db.session.query(Sale)
    if seller_id is not None:
        query = query.filter(Sale.seller_id == seller_id)
    if start_dt is not None:
        query = query.filter(Sale.sold_at >= start_dt)
    if end_dt is not None:
        query = query.filter(Sale.sold_at < end_dt)
    return query.order_by(Sale.sold_at.desc(), Sale.id.desc()).all()


def get_sale(sale_id: int, seller_id: int | None = None) -> Sale:
    """A seller asking for another seller's sale gets SaleNotFound, not a 403."""
    sale = db.session.get(Sale, sale_id)
    if sale is None or (seller_id is not None and sale.seller_id != seller_id):
        raise SaleNotFound("Sale not found", details={"sale_id": sale_id})
    return sale
