"""
Sale engine tests.

Verifies:
- a sale debits seller stock and writes no Transfer
- preconditions fail in order and leave nothing behind
- history reads are seller-scoped and honour whole-day date ranges
"""

from datetime import datetime

import pytest

from hisobchi.errors import (
    InsufficientStock,
    InvalidAmount,
    NotAssigned,
    ProductNotFound,
    SaleNotFound,
    SellerNotFound,
)
from hisobchi.models import Sale, SellerStock, Transfer
from hisobchi.services import sales_service, transfer_service
from hisobchi.validation import ValidationError


@pytest.fixture
def stocked(db_session, seller, product):
    """Seller S assigned to P holding 30 units."""
    transfer_service.transfer_to_seller(seller.id, [(product.id, 30)])
    return seller, product


def _held(db_session, seller_id, product_id):
    return db_session.query(SellerStock).filter_by(seller_id=seller_id, product_id=product_id).one().quantity


def test_scenario_sell_5_at_1000(db_session, stocked):
    seller, product = stocked
    transfers_before = db_session.query(Transfer).count()

    sale = sales_service.record_sale(seller.id, product.id, 5, unit_price_cents=1000)

    assert sale.total_amount_cents == 5000
    assert sale.unit_price_cents == 1000
    assert _held(db_session, seller.id, product.id) == 25
    assert db_session.query(Transfer).count() == transfers_before


def test_scenario_oversell_rejected(db_session, stocked):
    seller, product = stocked
    sales_service.record_sale(seller.id, product.id, 5, unit_price_cents=1000)

    with pytest.raises(InsufficientStock) as exc_info:
        sales_service.record_sale(seller.id, product.id, 26, unit_price_cents=1000)

    assert exc_info.value.details["requested"] == 26
    assert exc_info.value.details["available"] == 25
    assert db_session.query(Sale).count() == 1
    assert _held(db_session, seller.id, product.id) == 25


def test_sell_everything(db_session, stocked):
    seller, product = stocked
    sales_service.record_sale(seller.id, product.id, 30)
    assert _held(db_session, seller.id, product.id) == 0


def test_price_defaults_to_product_price(db_session, stocked):
    seller, product = stocked
    sale = sales_service.record_sale(seller.id, product.id, 2)
    assert sale.unit_price_cents == 1000
    assert sale.total_amount_cents == 2000


def test_customer_details_are_kept(db_session, stocked):
    seller, product = stocked
    sale = sales_service.record_sale(
        seller.id, product.id, 1,
        customer_name="Dilshod", customer_phone="+998901112233", notes="gift wrap",
    )
    assert sale.customer_name == "Dilshod"
    assert sale.customer_phone == "+998901112233"
    assert sale.notes == "gift wrap"


@pytest.mark.parametrize("quantity", [0, -3, 2.5, True])
def test_invalid_quantity(db_session, stocked, quantity):
    seller, product = stocked
    with pytest.raises(InvalidAmount):
        sales_service.record_sale(seller.id, product.id, quantity)


def test_invalid_price(db_session, stocked):
    seller, product = stocked
    with pytest.raises(InvalidAmount):
        sales_service.record_sale(seller.id, product.id, 1, unit_price_cents=0)


def test_unknown_product(db_session, seller):
    with pytest.raises(ProductNotFound):
        sales_service.record_sale(seller.id, 999, 1)


def test_inactive_seller(db_session, stocked):
    seller, product = stocked
    seller.is_active = False
    db_session.commit()

    with pytest.raises(SellerNotFound):
        sales_service.record_sale(seller.id, product.id, 1)


def test_not_assigned(db_session, seller, other_seller, product):
    with pytest.raises(NotAssigned):
        sales_service.record_sale(other_seller.id, product.id, 1)
    assert db_session.query(Sale).count() == 0


def test_unassigned_after_return_cannot_sell(db_session, stocked):
    seller, product = stocked
    transfer_service.unassign_product(seller.id, product.id, return_stock=True)

    with pytest.raises(NotAssigned):
        sales_service.record_sale(seller.id, product.id, 1)


class TestReads:
    def test_list_sales_by_seller(self, db_session, stocked, other_seller):
        seller, product = stocked
        transfer_service.transfer_to_seller(other_seller.id, [(product.id, 5)])
        sales_service.record_sale(seller.id, product.id, 1)
        sales_service.record_sale(other_seller.id, product.id, 2)

        assert len(sales_service.list_sales()) == 2
        mine = sales_service.list_sales(seller_id=seller.id)
        assert [s.quantity for s in mine] == [1]

    def test_date_range_includes_whole_end_day(self, db_session, stocked):
        seller, product = stocked
        early = sales_service.record_sale(seller.id, product.id, 1)
        late = sales_service.record_sale(seller.id, product.id, 1)
        outside = sales_service.record_sale(seller.id, product.id, 1)
        early.sold_at = datetime(2024, 1, 1, 0, 0, 0)
        late.sold_at = datetime(2024, 1, 31, 23, 59, 0)
        outside.sold_at = datetime(2024, 2, 1, 0, 0, 0)
        db_session.commit()

        sales = sales_service.list_sales(seller_id=seller.id, start="2024-01-01", end="2024-01-31")

        assert sorted(s.id for s in sales) == sorted([early.id, late.id])

    def test_bad_dates(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.list_sales(start="01/01/2024")

    def test_get_sale_scoped_to_seller(self, db_session, stocked, other_seller):
        seller, product = stocked
        sale = sales_service.record_sale(seller.id, product.id, 1)

        assert sales_service.get_sale(sale.id).id == sale.id
        assert sales_service.get_sale(sale.id, seller_id=seller.id).id == sale.id
        with pytest.raises(SaleNotFound):
            sales_service.get_sale(sale.id, seller_id=other_seller.id)
