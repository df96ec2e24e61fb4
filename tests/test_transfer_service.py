"""
Transfer engine tests.

Covers the warehouse -> seller and seller -> warehouse movements, the
unassign, override and delete workflows, and the all-or-nothing behaviour
of bulk transfers.
"""

import pytest

from hisobchi.errors import (
    AssignmentNotActive,
    InsufficientSellerStock,
    InsufficientStock,
    InsufficientWarehouseStock,
    InvalidAmount,
    ProductNotFound,
    SellerNotFound,
    StockRecordNotFound,
    StockStillHeld,
    TransferNotFound,
)
from hisobchi.models import Product, SellerProduct, SellerStock, Transfer
from hisobchi.services import assignment_service, sales_service, seller_service, transfer_service
from hisobchi.validation import ValidationError

from conftest import make_product


def _warehouse(db_session, product_id):
    return db_session.get(Product, product_id).warehouse_quantity


def _held(db_session, seller_id, product_id):
    row = db_session.query(SellerStock).filter_by(seller_id=seller_id, product_id=product_id).first()
    return row.quantity if row else None


def _assignment(db_session, seller_id, product_id):
    return db_session.query(SellerProduct).filter_by(seller_id=seller_id, product_id=product_id).first()


class TestTransferStockPrimitive:
    def test_zero_amount(self, db_session, seller, product):
        with pytest.raises(InvalidAmount):
            transfer_service.transfer_stock(db_session, seller_id=seller.id, product_id=product.id, signed_amount=0)

    def test_outbound_creates_row_and_transfer(self, db_session, seller, product):
        transfer = transfer_service.transfer_stock(
            db_session, seller_id=seller.id, product_id=product.id, signed_amount=12,
        )
        db_session.commit()

        assert transfer.type == "transfer"
        assert transfer.status == "completed"
        assert transfer.quantity == 12
        assert _warehouse(db_session, product.id) == 88
        assert _held(db_session, seller.id, product.id) == 12

    def test_inbound_needs_seller_stock(self, db_session, seller, product):
        with pytest.raises(InsufficientSellerStock) as exc_info:
            transfer_service.transfer_stock(
                db_session, seller_id=seller.id, product_id=product.id, signed_amount=-1,
            )
        assert exc_info.value.details["available"] == 0
        assert isinstance(exc_info.value, InsufficientStock)

    def test_outbound_beyond_warehouse(self, db_session, seller, product):
        with pytest.raises(InsufficientWarehouseStock):
            transfer_service.transfer_stock(
                db_session, seller_id=seller.id, product_id=product.id, signed_amount=101,
            )
        db_session.rollback()
        assert _warehouse(db_session, product.id) == 100
        assert _held(db_session, seller.id, product.id) is None


class TestTransferToSeller:
    def test_scenario_transfer_30(self, db_session, seller, product):
        transfers = transfer_service.transfer_to_seller(seller.id, [(product.id, 30)])

        assert _warehouse(db_session, product.id) == 70
        assert _held(db_session, seller.id, product.id) == 30
        assert len(transfers) == 1
        assert transfers[0].type == "transfer"
        assert transfers[0].quantity == 30
        assert db_session.query(Transfer).count() == 1
        assert _assignment(db_session, seller.id, product.id).is_active is True

    def test_entire_warehouse(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 100)])

        assert _warehouse(db_session, product.id) == 0
        assert _held(db_session, seller.id, product.id) == 100

    def test_records_actor(self, db_session, admin, seller, product):
        transfers = transfer_service.transfer_to_seller(seller.id, [(product.id, 1)], actor_user_id=admin.id)
        assert transfers[0].created_by_user_id == admin.id

    def test_reactivates_assignment(self, db_session, seller, product):
        assignment_service.assign(db_session, seller.id, product.id)
        assignment_service.unassign(db_session, seller.id, product.id)
        db_session.commit()

        transfer_service.transfer_to_seller(seller.id, [(product.id, 5)])

        assert _assignment(db_session, seller.id, product.id).is_active is True
        assert db_session.query(SellerProduct).count() == 1

    def test_bulk_failure_rolls_back_everything(self, db_session, seller, product, category):
        scarce = make_product(db_session, category, name="Scarce", warehouse_quantity=3)

        with pytest.raises(InsufficientWarehouseStock):
            transfer_service.transfer_to_seller(seller.id, [(product.id, 10), (scarce.id, 4)])

        assert _warehouse(db_session, product.id) == 100
        assert _warehouse(db_session, scarce.id) == 3
        assert db_session.query(SellerStock).count() == 0
        assert db_session.query(Transfer).count() == 0
        assert db_session.query(SellerProduct).count() == 0

    def test_unknown_product_rolls_back(self, db_session, seller, product):
        with pytest.raises(ProductNotFound):
            transfer_service.transfer_to_seller(seller.id, [(product.id, 10), (999, 1)])
        assert _warehouse(db_session, product.id) == 100

    def test_unknown_seller(self, db_session, product):
        with pytest.raises(SellerNotFound):
            transfer_service.transfer_to_seller(999, [(product.id, 1)])

    def test_rejects_bad_quantities_up_front(self, db_session, seller, product):
        with pytest.raises(InvalidAmount):
            transfer_service.transfer_to_seller(seller.id, [(product.id, 0)])
        with pytest.raises(ValidationError):
            transfer_service.transfer_to_seller(seller.id, [])


class TestReturns:
    def test_round_trip_restores_counters(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 20)])
        transfer_service.return_from_seller(seller.id, product.id, 20)

        assert _warehouse(db_session, product.id) == 100
        assert _held(db_session, seller.id, product.id) == 0
        kinds = sorted((t.type, t.quantity) for t in db_session.query(Transfer).all())
        assert kinds == [("return", 20), ("transfer", 20)]

    def test_return_more_than_held(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 5)])

        with pytest.raises(InsufficientSellerStock) as exc_info:
            transfer_service.return_from_seller(seller.id, product.id, 6)

        assert exc_info.value.details["requested"] == 6
        assert exc_info.value.details["available"] == 5
        assert _held(db_session, seller.id, product.id) == 5
        assert _warehouse(db_session, product.id) == 95

    def test_partial_return_against_transfer(self, db_session, seller, product):
        [outbound] = transfer_service.transfer_to_seller(seller.id, [(product.id, 10)])

        first = transfer_service.return_transfer(outbound.id, 4)
        second = transfer_service.return_transfer(outbound.id)

        assert first.related_transfer_id == outbound.id
        assert first.quantity == 4
        assert second.quantity == 6
        assert _held(db_session, seller.id, product.id) == 0

        with pytest.raises(InvalidAmount) as exc_info:
            transfer_service.return_transfer(outbound.id, 1)
        assert exc_info.value.details["remaining"] == 0

    def test_return_against_return_rejected(self, db_session, seller, product):
        [outbound] = transfer_service.transfer_to_seller(seller.id, [(product.id, 2)])
        back = transfer_service.return_transfer(outbound.id)

        with pytest.raises(ValidationError):
            transfer_service.return_transfer(back.id)

    def test_return_unknown_transfer(self, db_session):
        with pytest.raises(TransferNotFound):
            transfer_service.return_transfer(12345)


class TestUnassign:
    def test_scenario_refused_while_holding(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 25)])

        with pytest.raises(StockStillHeld) as exc_info:
            transfer_service.unassign_product(seller.id, product.id)

        assert exc_info.value.details["current_stock"] == 25
        assert _assignment(db_session, seller.id, product.id).is_active is True
        assert _held(db_session, seller.id, product.id) == 25

    def test_scenario_with_return(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 25)])
        warehouse_before = _warehouse(db_session, product.id)

        result = transfer_service.unassign_product(seller.id, product.id, return_stock=True)

        assert result["stock_returned"] == 25
        assert result["transfer"].type == "return"
        assert result["transfer"].quantity == 25
        assert _warehouse(db_session, product.id) == warehouse_before + 25
        assert _held(db_session, seller.id, product.id) == 0
        assert _assignment(db_session, seller.id, product.id).is_active is False

    def test_zero_stock_needs_no_transfer(self, db_session, seller, product):
        assignment_service.assign_product(seller.id, product.id)

        result = transfer_service.unassign_product(seller.id, product.id)

        assert result == {"stock_returned": 0, "transfer": None}
        assert db_session.query(Transfer).count() == 0
        assert _assignment(db_session, seller.id, product.id).is_active is False

    def test_not_assigned(self, db_session, seller, product):
        with pytest.raises(AssignmentNotActive):
            transfer_service.unassign_product(seller.id, product.id, return_stock=True)


class TestSetSellerStockQuantity:
    def _stock_of(self, db_session, seller, product, quantity):
        transfer_service.transfer_to_seller(seller.id, [(product.id, quantity)])
        return db_session.query(SellerStock).filter_by(seller_id=seller.id, product_id=product.id).one()

    def test_scenario_raise_25_to_40(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 30)
        sales_service.record_sale(seller.id, product.id, 5)
        assert _held(db_session, seller.id, product.id) == 25
        assert _warehouse(db_session, product.id) == 70
        transfers_before = db_session.query(Transfer).count()

        result = transfer_service.set_seller_stock_quantity(stock.id, 40)

        assert result["transfer_created"] is True
        assert result["change"] == 15
        assert result["warehouse_quantity_after"] == 55
        assert result["seller_stock"]["quantity"] == 40
        assert result["transfer"]["type"] == "transfer"
        assert result["transfer"]["quantity"] == 15
        assert db_session.query(Transfer).count() == transfers_before + 1

    def test_lowering_creates_return(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 30)

        result = transfer_service.set_seller_stock_quantity(stock.id, 10)

        assert result["change"] == -20
        assert result["transfer"]["type"] == "return"
        assert _warehouse(db_session, product.id) == 90

    def test_same_value_is_noop(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 30)

        result = transfer_service.set_seller_stock_quantity(stock.id, 30)

        assert result["transfer_created"] is False
        assert result["transfer"] is None
        assert db_session.query(Transfer).count() == 1

    def test_above_max_allowed(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 30)

        with pytest.raises(InsufficientWarehouseStock) as exc_info:
            transfer_service.set_seller_stock_quantity(stock.id, 101)

        assert exc_info.value.details["max_allowed"] == 100
        assert _held(db_session, seller.id, product.id) == 30

    def test_exactly_max_allowed(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 30)

        transfer_service.set_seller_stock_quantity(stock.id, 100)

        assert _warehouse(db_session, product.id) == 0

    def test_negative_target(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 1)
        with pytest.raises(InvalidAmount):
            transfer_service.set_seller_stock_quantity(stock.id, -1)

    def test_unknown_stock(self, db_session):
        with pytest.raises(StockRecordNotFound):
            transfer_service.set_seller_stock_quantity(999, 1)

    def test_raise_refused_for_deleted_seller(self, db_session, seller, product):
        stock = self._stock_of(db_session, seller, product, 5)
        transfer_service.unassign_product(seller.id, product.id, return_stock=True)
        seller_service.soft_delete_seller(seller.id)

        with pytest.raises(SellerNotFound):
            transfer_service.set_seller_stock_quantity(stock.id, 10)

        assert _held(db_session, seller.id, product.id) == 0
        assert _warehouse(db_session, product.id) == 100
        assert _assignment(db_session, seller.id, product.id).is_active is False


class TestDeleteSellerStock:
    def test_returns_everything_and_deletes_row(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 8)])
        stock = db_session.query(SellerStock).one()

        result = transfer_service.delete_seller_stock(stock.id)

        assert result["returned_quantity"] == 8
        assert result["transfer_created"] is True
        assert result["unassigned"] is False
        assert _warehouse(db_session, product.id) == 100
        assert db_session.query(SellerStock).count() == 0
        assert _assignment(db_session, seller.id, product.id).is_active is True

    def test_with_unassign(self, db_session, seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 8)])
        stock = db_session.query(SellerStock).one()

        result = transfer_service.delete_seller_stock(stock.id, unassign=True)

        assert result["unassigned"] is True
        assert _assignment(db_session, seller.id, product.id).is_active is False

    def test_empty_row_writes_no_transfer(self, db_session, seller, product):
        [outbound] = transfer_service.transfer_to_seller(seller.id, [(product.id, 3)])
        transfer_service.return_transfer(outbound.id)
        stock = db_session.query(SellerStock).one()

        result = transfer_service.delete_seller_stock(stock.id)

        assert result["transfer_created"] is False
        assert db_session.query(Transfer).count() == 2


class TestReads:
    def test_list_and_filter(self, db_session, seller, other_seller, product):
        transfer_service.transfer_to_seller(seller.id, [(product.id, 3)])
        transfer_service.transfer_to_seller(other_seller.id, [(product.id, 4)])
        transfer_service.return_from_seller(seller.id, product.id, 1)

        assert len(transfer_service.list_transfers()) == 3
        assert len(transfer_service.list_transfers(seller_id=seller.id)) == 2
        returns = transfer_service.list_transfers(type="return")
        assert [t.quantity for t in returns] == [1]

        with pytest.raises(ValidationError):
            transfer_service.list_transfers(type="sideways")

    def test_get_transfer(self, db_session, seller, product):
        [outbound] = transfer_service.transfer_to_seller(seller.id, [(product.id, 3)])
        assert transfer_service.get_transfer(outbound.id).quantity == 3
        with pytest.raises(TransferNotFound):
            transfer_service.get_transfer(outbound.id + 100)
