"""
Pytest fixtures for the shop POS backend tests.

Provides an in-memory database, staff members per role, session tokens and
a test client.
"""

from decimal import Decimal

import pytest

from shoppos import create_app
from shoppos.extensions import db
from shoppos.models import Brand, Category, Discount, Product, Profile, RefillOption, User, UserRole
from shoppos.permissions import CASHIER, MANAGER, SUPER_ADMIN
from shoppos.services import session_service
from shoppos.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


def make_staff(email: str, role: str | None, password_hash: str) -> User:
    user = User(email=email, password_hash=password_hash, is_active=True)
    db.session.add(user)
    db.session.flush()
    db.session.add(Profile(user_id=user.id, email=email, full_name=email.split("@")[0].title()))
    if role is not None:
        db.session.add(UserRole(user_id=user.id, role=role))
    db.session.commit()
    return user


def context_for(user: User) -> session_service.StaffContext:
    return session_service.StaffContext(
        user_id=user.id,
        role=session_service.get_role(user.id),
        email=user.email,
    )


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user: User) -> dict:
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return make_staff("admin@shop.local", SUPER_ADMIN, password_hash)


@pytest.fixture(scope='function')
def manager_user(db_session, password_hash):
    return make_staff("manager@shop.local", MANAGER, password_hash)


@pytest.fixture(scope='function')
def cashier_user(db_session, password_hash):
    return make_staff("cashier@shop.local", CASHIER, password_hash)


@pytest.fixture(scope='function')
def roleless_user(db_session, password_hash):
    return make_staff("new@shop.local", None, password_hash)


@pytest.fixture(scope='function')
def admin_context(admin_user):
    return context_for(admin_user)


@pytest.fixture(scope='function')
def manager_context(manager_user):
    return context_for(manager_user)


@pytest.fixture(scope='function')
def cashier_context(cashier_user):
    return context_for(cashier_user)


@pytest.fixture(scope='function')
def roleless_context(roleless_user):
    return context_for(roleless_user)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return headers_for(manager_user)


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    return headers_for(cashier_user)


@pytest.fixture(scope='function')
def roleless_headers(roleless_user):
    return headers_for(roleless_user)


@pytest.fixture(scope='function')
def flavours(db_session):
    """Root category 'Flavours' with the 'Flavour Bottles' sub-category."""
    root = Category(name="Flavours", description="E-liquids and flavours")
    db_session.add(root)
    db_session.flush()
    child = Category(name="Flavour Bottles", parent_id=root.id)
    db_session.add(child)
    db_session.commit()
    return root, child


@pytest.fixture(scope='function')
def brand(db_session):
    b = Brand(name="Oxva")
    db_session.add(b)
    db_session.commit()
    return b


@pytest.fixture(scope='function')
def product(db_session, flavours):
    """Selling 150.00, cost 100.00, 10 in stock."""
    _, bottles = flavours
    p = Product(
        name="Mango Ice 30ml",
        barcode="8900001",
        category_id=bottles.id,
        buying_price=Decimal("100.00"),
        selling_price=Decimal("150.00"),
        stock_quantity=10,
        low_stock_threshold=3,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def second_product(db_session):
    """Uncategorized; selling 50.00, cost 20.00, 2 in stock."""
    p = Product(
        name="Coil 0.8",
        barcode="8900002",
        buying_price=Decimal("20.00"),
        selling_price=Decimal("50.00"),
        stock_quantity=2,
        low_stock_threshold=5,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def refill_option(db_session):
    option = RefillOption(name="2 ml Refill", volume_ml=2, default_price=Decimal("250.00"), is_active=True)
    db_session.add(option)
    db_session.commit()
    return option


@pytest.fixture(scope='function')
def ten_percent(db_session, admin_user):
    d = Discount(
        name="10% Off",
        kind="percentage",
        value=Decimal("10"),
        is_active=True,
        created_by_user_id=admin_user.id,
    )
    db_session.add(d)
    db_session.commit()
    return d
