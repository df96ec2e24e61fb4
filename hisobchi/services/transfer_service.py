# Overview: Warehouse <-> seller movements; every movement writes a Transfer in the same transaction.

from __future__ import annotations

import logging

from sqlalchemy import func

from ..errors import (
    AssignmentNotActive,
    InsufficientSellerStock,
    InsufficientStock,
    InsufficientWarehouseStock,
    InvalidAmount,
    ProductNotFound,
    StockRecordNotFound,
    StockStillHeld,
    TransferNotFound,
)
from ..extensions import db
from ..models import Product, SellerStock, Transfer
from ..models.documents import (
    TRANSFER_STATUS_COMPLETED,
    TRANSFER_TYPE_RETURN,
    TRANSFER_TYPE_TRANSFER,
    TRANSFER_TYPES,
)
from ..validation import ValidationError
from . import assignment_service, ledger_service
from .concurrency import run_with_retry, unit_of_work
from .seller_service import get_seller, require_active_seller


logger = logging.getLogger(__name__)


def _require_positive(quantity, key: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidAmount(f"{key} must be a positive integer", details={key: quantity})
    return quantity


def _require_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound("Product not found", details={"product_id": product_id})
    return product


def _log_movement(transfer: Transfer) -> None:
    logger.info(
        "Stock %s: seller=%s product=%s quantity=%s transfer=%s",
        transfer.type, transfer.seller_id, transfer.product_id, transfer.quantity, transfer.id,
    )


# =============================================================================
# PRIMITIVE
# =============================================================================

def transfer_stock(
    session,
    *,
    seller_id: int,
    product_id: int,
    signed_amount: int,
    actor_user_id: int | None = None,
    related_transfer_id: int | None = None,
) -> Transfer:
    """
    Move |signed_amount| units between the warehouse and a seller.

    signed_amount > 0: warehouse -> seller (type "transfer"); the seller stock
    row is created with quantity 0 first when missing.
    signed_amount < 0: seller -> warehouse (type "return").

    Both counters change inside the caller's unit of work, and a completed
    Transfer is written for the movement. Raises InvalidAmount for 0,
    InsufficientWarehouseStock / InsufficientSellerStock when the source
    side cannot cover the amount.
    """
    if isinstance(signed_amount, bool) or not isinstance(signed_amount, int) or signed_amount == 0:
        raise InvalidAmount(
            "Transfer amount must be a non-zero integer",
            details={"amount": signed_amount},
        )

    if signed_amount > 0:
        amount = signed_amount
        ledger_service.decrease_warehouse(session, product_id, amount)
        stock = ledger_service.get_or_create_stock(session, seller_id, product_id)
        ledger_service.increase(session, amount=amount, stock_id=stock.id)
        transfer_type = TRANSFER_TYPE_TRANSFER
    else:
        amount = -signed_amount
        try:
            ledger_service.decrease(session, amount=amount, seller_id=seller_id, product_id=product_id)
        except InsufficientStock as exc:
            available = exc.details.get("available", 0)
            raise InsufficientSellerStock(
                f"Seller holds only {available}, cannot return {amount}",
                details={
                    "seller_id": seller_id,
                    "product_id": product_id,
                    "requested": amount,
                    "available": available,
                },
            ) from exc
        ledger_service.increase_warehouse(session, product_id, amount)
        transfer_type = TRANSFER_TYPE_RETURN

    transfer = Transfer(
        seller_id=seller_id,
        product_id=product_id,
        quantity=amount,
        type=transfer_type,
        status=TRANSFER_STATUS_COMPLETED,
        related_transfer_id=related_transfer_id,
        created_by_user_id=actor_user_id,
    )
    session.add(transfer)
    session.flush()
    return transfer


# =============================================================================
# WORKFLOWS
# =============================================================================

def transfer_to_seller(seller_id: int, items, actor_user_id: int | None = None) -> list[Transfer]:
    """
    Send several products to one seller as a single atomic request.

    items: iterable of (product_id, quantity). Each product is assigned to
    the seller (created or reactivated) along with its stock movement. If
    any item fails, nothing from the request is kept.
    """
    items = list(items)
    if not items:
        raise ValidationError("At least one item is required")
    for _, quantity in items:
        _require_positive(quantity)

    def _op():
        with unit_of_work() as session:
            require_active_seller(session, seller_id)
            transfers = []
            for product_id, quantity in items:
                _require_product(session, product_id)
                transfers.append(
                    transfer_stock(
                        session,
                        seller_id=seller_id,
                        product_id=product_id,
                        signed_amount=quantity,
                        actor_user_id=actor_user_id,
                    )
                )
                assignment_service.assign(session, seller_id, product_id)
        for transfer in transfers:
            _log_movement(transfer)
        return transfers

    return run_with_retry(_op)


def return_from_seller(seller_id: int, product_id: int, quantity: int, actor_user_id: int | None = None) -> Transfer:
    """Move quantity back from a seller to the warehouse."""
    _require_positive(quantity)

    def _op():
        with unit_of_work() as session:
            get_seller(session, seller_id)
            _require_product(session, product_id)
            transfer = transfer_stock(
                session,
                seller_id=seller_id,
                product_id=product_id,
                signed_amount=-quantity,
                actor_user_id=actor_user_id,
            )
        _log_movement(transfer)
        return transfer

    return run_with_retry(_op)


def returned_against(session, transfer_id: int) -> int:
    total = (
        session.query(func.coalesce(func.sum(Transfer.quantity), 0))
        .filter(
            Transfer.related_transfer_id == transfer_id,
            Transfer.type == TRANSFER_TYPE_RETURN,
            Transfer.status == TRANSFER_STATUS_COMPLETED,
        )
        .scalar()
    )
    return int(total or 0)


def return_transfer(transfer_id: int, quantity: int | None = None, actor_user_id: int | None = None) -> Transfer:
    """
    Return stock against a specific outbound transfer.

    quantity defaults to whatever is still outstanding on that transfer.
    The sum of all returns against one transfer never exceeds its quantity.
    """
    if quantity is not None:
        _require_positive(quantity)

    def _op():
        with unit_of_work() as session:
            original = session.get(Transfer, transfer_id)
            if original is None:
                raise TransferNotFound("Transfer not found", details={"transfer_id": transfer_id})
            if original.type != TRANSFER_TYPE_TRANSFER:
                raise ValidationError("Only outbound transfers can be returned")
            if original.status != TRANSFER_STATUS_COMPLETED:
                raise ValidationError("Only completed transfers can be returned")

            remaining = original.quantity - returned_against(session, transfer_id)
            requested = remaining if quantity is None else quantity
            if remaining <= 0 or requested > remaining:
                raise InvalidAmount(
                    f"Cannot return {requested}, only {max(remaining, 0)} remaining on transfer {transfer_id}",
                    details={
                        "transfer_id": transfer_id,
                        "requested": requested,
                        "remaining": max(remaining, 0),
                    },
                )

            transfer = transfer_stock(
                session,
                seller_id=original.seller_id,
                product_id=original.product_id,
                signed_amount=-requested,
                actor_user_id=actor_user_id,
                related_transfer_id=original.id,
            )
        _log_movement(transfer)
        return transfer

    return run_with_retry(_op)


def unassign_product(
    seller_id: int,
    product_id: int,
    return_stock: bool = False,
    actor_user_id: int | None = None,
) -> dict:
    """
    Take a product away from a seller.

    Stock still held blocks the unassign unless return_stock is set, in
    which case all of it goes back to the warehouse first (one return
    Transfer). With nothing held the pair is unassigned without a Transfer.
    """
    def _op():
        with unit_of_work() as session:
            row = assignment_service.find_assignment(session, seller_id, product_id)
            if row is None or not row.is_active:
                raise AssignmentNotActive(
                    "Product is not assigned to this seller",
                    details={"seller_id": seller_id, "product_id": product_id},
                )

            held = ledger_service.current_quantity(session, seller_id=seller_id, product_id=product_id)
            transfer = None
            if held > 0:
                if not return_stock:
                    raise StockStillHeld(
                        f"Seller still holds {held} units of this product; "
                        "return the stock before unassigning (returnStock=true)",
                        details={"seller_id": seller_id, "product_id": product_id, "current_stock": held},
                    )
                transfer = transfer_stock(
                    session,
                    seller_id=seller_id,
                    product_id=product_id,
                    signed_amount=-held,
                    actor_user_id=actor_user_id,
                )

            assignment_service.unassign(session, seller_id, product_id)

        if transfer is not None:
            _log_movement(transfer)
        logger.info("Unassigned product %s from seller %s", product_id, seller_id)
        return {"stock_returned": held if transfer is not None else 0, "transfer": transfer}

    return run_with_retry(_op)


def set_seller_stock_quantity(stock_id: int, new_quantity: int, actor_user_id: int | None = None) -> dict:
    """
    Admin override of a seller stock row, expressed as a movement.

    The difference to the current value is moved to or from the warehouse,
    so the most that can be set is current + warehouse quantity.
    """
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity < 0:
        raise InvalidAmount("quantity must be a non-negative integer", details={"quantity": new_quantity})

    def _op():
        with unit_of_work() as session:
            stock = session.get(SellerStock, stock_id)
            if stock is None:
                raise StockRecordNotFound("Seller stock record not found", details={"stock_id": stock_id})
            product = _require_product(session, stock.product_id)

            current = stock.quantity
            max_allowed = current + product.warehouse_quantity
            if new_quantity > max_allowed:
                raise InsufficientWarehouseStock(
                    f"Cannot set quantity to {new_quantity}, at most {max_allowed} is possible "
                    f"({current} held + {product.warehouse_quantity} in warehouse)",
                    details={
                        "stock_id": stock_id,
                        "requested": new_quantity,
                        "current": current,
                        "warehouse_quantity": product.warehouse_quantity,
                        "max_allowed": max_allowed,
                    },
                )

            change = new_quantity - current
            transfer = None
            if change:
                if change > 0:
                    # Stock only goes to active sellers.
                    require_active_seller(session, stock.seller_id)
                transfer = transfer_stock(
                    session,
                    seller_id=stock.seller_id,
                    product_id=stock.product_id,
                    signed_amount=change,
                    actor_user_id=actor_user_id,
                )
                if change > 0:
                    assignment_service.assign(session, stock.seller_id, stock.product_id)
                session.refresh(stock)
                session.refresh(product)

            result = {
                "transfer_created": transfer is not None,
                "change": change,
                "warehouse_quantity_after": product.warehouse_quantity,
                "seller_stock": stock.to_dict(),
                "transfer": transfer.to_dict() if transfer is not None else None,
            }

        if transfer is not None:
            _log_movement(transfer)
        return result

    return run_with_retry(_op)


def delete_seller_stock(stock_id: int, unassign: bool = False, actor_user_id: int | None = None) -> dict:
    """
    Return everything a seller stock row holds, optionally unassign, then drop the row.
    """
    def _op():
        with unit_of_work() as session:
            stock = session.get(SellerStock, stock_id)
            if stock is None:
                raise StockRecordNotFound("Seller stock record not found", details={"stock_id": stock_id})

            seller_id, product_id, held = stock.seller_id, stock.product_id, stock.quantity
            transfer = None
            if held > 0:
                transfer = transfer_stock(
                    session,
                    seller_id=seller_id,
                    product_id=product_id,
                    signed_amount=-held,
                    actor_user_id=actor_user_id,
                )

            unassigned = False
            if unassign and assignment_service.is_assigned(session, seller_id, product_id):
                assignment_service.unassign(session, seller_id, product_id)
                unassigned = True

            session.delete(stock)
            result = {
                "returned_quantity": held,
                "transfer_created": transfer is not None,
                "unassigned": unassigned,
                "transfer": transfer.to_dict() if transfer is not None else None,
            }

        if transfer is not None:
            _log_movement(transfer)
        return result

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def list_transfers(
    seller_id: int | None = None,
    product_id: int | None = None,
    type: str | None = None,
    limit: int = 100,
) -> list[Transfer]:
    query = db.session.query(Transfer)
    if seller_id is not None:
        query = query.filter(Transfer.seller_id == seller_id)
    if product_id is not None:
        query = query.filter(Transfer.product_id == product_id)
    if type is not None:
        if type not in TRANSFER_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(TRANSFER_TYPES)}")
        query = query.filter(Transfer.type == type)
    return query.order_by(Transfer.transfer_date.desc(), Transfer.id.desc()).limit(limit).all()


def get_transfer(transfer_id: int) -> Transfer:
    transfer = db.session.get(Transfer, transfer_id)
    if transfer is None:
        raise TransferNotFound("Transfer not found", details={"transfer_id": transfer_id})
    return transfer
