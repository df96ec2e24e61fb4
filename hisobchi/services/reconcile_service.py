# Overview: Cross-checks seller stock counters against the transfer and sale audit trail.

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import func

from ..extensions import db
from ..models import Sale, SellerStock, Transfer
from ..models.documents import TRANSFER_STATUS_COMPLETED, TRANSFER_TYPE_RETURN, TRANSFER_TYPE_TRANSFER


def _sums_by_pair(query) -> dict:
    return {(seller_id, product_id): int(total or 0) for seller_id, product_id, total in query.all()}


def reconcile_seller_stocks() -> list[dict]:
    """
    Recompute every (seller, product) balance as
    transferred in - returned - sold and compare it with seller_stocks.

    Returns one dict per pair that disagrees or is negative; an empty list
    means the counters and the audit trail agree.
    """
    def _transfer_sums(transfer_type):
        return _sums_by_pair(
            db.session.query(Transfer.seller_id, Transfer.product_id, func.sum(Transfer.quantity))
            .filter(Transfer.type == transfer_type, Transfer.status == TRANSFER_STATUS_COMPLETED)
            .group_by(Transfer.seller_id, Transfer.product_id)
        )

    transferred = _transfer_sums(TRANSFER_TYPE_TRANSFER)
    returned = _transfer_sums(TRANSFER_TYPE_RETURN)
    sold = _sums_by_pair(
        db.session.query(Sale.seller_id, Sale.product_id, func.sum(Sale.quantity))
        .group_by(Sale.seller_id, Sale.product_id)
    )
    recorded = defaultdict(int)
    for seller_id, product_id, quantity in db.session.query(
        SellerStock.seller_id, SellerStock.product_id, SellerStock.quantity
    ).all():
        recorded[(seller_id, product_id)] = quantity

    problems = []
    for pair in sorted(set(transferred) | set(returned) | set(sold) | set(recorded)):
        expected = transferred.get(pair, 0) - returned.get(pair, 0) - sold.get(pair, 0)
        actual = recorded.get(pair, 0)
        if expected != actual or actual < 0:
            problems.append({
                "seller_id": pair[0],
                "product_id": pair[1],
                "expected": expected,
                "recorded": actual,
            })
    return problems
