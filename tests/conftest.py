"""
Pytest fixtures for hisobchi tests.

Provides an in-memory database app, per-test table wipe, catalog and
user fixtures, and Telegram header helpers.
"""

import pytest

from hisobchi import create_app
from hisobchi.extensions import db
from hisobchi.models import Category, Product, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_BACKOFF': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(session, *, role="seller", telegram_id=None, phone=None, first_name="Test", **kwargs) -> User:
    user = User(
        role=role,
        telegram_id=telegram_id,
        phone_number=phone,
        first_name=first_name,
        **kwargs,
    )
    session.add(user)
    session.commit()
    return user


def make_product(session, category, *, name="Product", price_cents=1000, cost_price_cents=600, warehouse_quantity=100, **kwargs) -> Product:
    product = Product(
        name=name,
        price_cents=price_cents,
        cost_price_cents=cost_price_cents,
        category_id=category.id,
        warehouse_quantity=warehouse_quantity,
        **kwargs,
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Phones")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def product(db_session, category):
    """Product P with 100 units in the warehouse, price 1000."""
    return make_product(db_session, category, name="Product P", sku="P-001")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, role="admin", telegram_id="9001", phone="+998900000001", first_name="Admin")


@pytest.fixture(scope='function')
def seller(db_session):
    return make_user(db_session, role="seller", telegram_id="1001", phone="+998900000101", first_name="Seller S")


@pytest.fixture(scope='function')
def other_seller(db_session):
    return make_user(db_session, role="seller", telegram_id="1002", phone="+998900000102", first_name="Seller T")


def telegram_headers(user: User) -> dict:
    """Helper to create X-Telegram-Id headers."""
    return {'X-Telegram-Id': user.telegram_id}


@pytest.fixture(scope='function')
def admin_headers(admin):
    return telegram_headers(admin)


@pytest.fixture(scope='function')
def seller_headers(seller):
    return telegram_headers(seller)
