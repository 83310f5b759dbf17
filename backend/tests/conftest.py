"""
Pytest fixtures for the shop backend tests.

Provides an in-memory application, a per-test clean database, staff users
for each role, catalog rows and an engine bound to db.session.
"""

import pytest

from opticapos import create_app
from opticapos.engine import ShopEngine
from opticapos.extensions import db
from opticapos.models import Category, Product, User

SHOP_TIMEZONE = "America/Sao_Paulo"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SHOP_TIMEZONE': SHOP_TIMEZONE,
        'LOW_STOCK_EDGE_TRIGGERED': False,
        'LOG_LEVEL': 'WARNING',
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


@pytest.fixture(scope='function')
def shop(db_session):
    """Engine with the same options the app would build from its config."""
    return ShopEngine(db_session, timezone=SHOP_TIMEZONE, timeout_seconds=5.0)


def _user(db_session, name, email, role):
    user = User(name=name, email=email, role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session):
    return _user(db_session, "Olga Owner", "owner@optica.local", "owner")


@pytest.fixture(scope='function')
def manager(db_session):
    return _user(db_session, "Marcos Manager", "manager@optica.local", "manager")


@pytest.fixture(scope='function')
def seller(db_session):
    return _user(db_session, "Sara Seller", "seller@optica.local", "seller")


@pytest.fixture(scope='function')
def staff(owner, manager, seller):
    return {"owner": owner, "manager": manager, "seller": seller}


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Lentes", description="Lentes de contato e óculos")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """Factory for products in the default category."""
    def _make(name="Lente Acuvue", price_cents=1000, quantity=10, min_stock=5, barcode=None):
        product = Product(
            category_id=category.id,
            name=name,
            barcode=barcode,
            price_cents=price_cents,
            quantity=quantity,
            min_stock=min_stock,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def auth_headers(user) -> dict:
    """Caller identity header as set by the upstream auth layer."""
    return {'X-User-Id': str(user.id)}
