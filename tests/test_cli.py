"""
CLI command tests.

Verifies:
- stock reconcile passes on a consistent database and exits 1 on drift
- users list / users create output and uniqueness handling
"""

from hisobchi.models import SellerStock, User
from hisobchi.services import sales_service, transfer_service


def test_reconcile_clean(app, db_session, seller, product):
    transfer_service.transfer_to_seller(seller.id, [(product.id, 30)])
    transfer_service.return_from_seller(seller.id, product.id, 5)
    sales_service.record_sale(seller.id, product.id, 5)

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])

    assert result.exit_code == 0, result.output
    assert "PASS" in result.output


def test_reconcile_reports_tampered_row(app, db_session, seller, product):
    transfer_service.transfer_to_seller(seller.id, [(product.id, 30)])
    stock = db_session.query(SellerStock).filter_by(seller_id=seller.id, product_id=product.id).one()
    stock.quantity = 31
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])

    assert result.exit_code == 1
    assert f"seller={seller.id} product={product.id} expected=30 recorded=31" in result.output


def test_users_list_filters_by_role(app, db_session, admin, seller):
    result = app.test_cli_runner().invoke(args=["users", "list", "--role", "seller"])

    assert result.exit_code == 0, result.output
    assert "Seller S" in result.output
    assert "Admin" not in result.output.split("=" * 90)[2]


def test_users_list_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "list"])
    assert "No users found." in result.output


def test_users_create(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--first-name", "Aziza",
        "--phone", "+998901234567",
        "--telegram-id", "777",
        "--role", "admin",
    ])

    assert result.exit_code == 0, result.output
    user = db_session.query(User).filter_by(phone_number="+998901234567").one()
    assert user.role == "admin"
    assert user.telegram_id == "777"


def test_users_create_duplicate_phone(app, db_session, seller):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--first-name", "Copy",
        "--phone", seller.phone_number,
    ])

    assert result.exit_code != 0
    assert "already registered" in result.output
