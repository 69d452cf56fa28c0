"""
Pytest fixtures for the POS backend.

Provides an ephemeral SQLite database, a FastAPI test client, staff
accounts per role and product factories.
"""

import os
import tempfile

# Environment must be in place before the app modules are imported
_DB_DIR = tempfile.mkdtemp(prefix="kasir-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOW_STOCK_THRESHOLD"] = "10"

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, init_db
from main import app as fastapi_app
from models.product import Product
from models.users import User
from services.pos_session import pos_sessions
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def app():
    init_db()
    return fastapi_app


@pytest.fixture(scope="function")
def db_session(app):
    """Fresh data for each test; the schema is kept."""
    session = SessionLocal()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    pos_sessions.clear()

    yield session

    session.rollback()
    session.close()
    pos_sessions.clear()


@pytest.fixture(scope="function")
def client(app, db_session):
    return TestClient(app)


# =============================================================================
# STAFF ACCOUNTS
# =============================================================================

@pytest.fixture
def make_user(db_session):
    def _make(role="cashier", email=None, username=None, password=DEFAULT_PASSWORD):
        user = User(
            username=username or role,
            email=email or f"{role}@example.com",
            password_hash=get_password_hash(password),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


def headers_for(user: User) -> dict:
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def manager(make_user):
    return make_user("manager")


@pytest.fixture
def cashier(make_user):
    return make_user("cashier")


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture
def cashier_headers(cashier):
    return headers_for(cashier)


# =============================================================================
# CATALOG
# =============================================================================

@pytest.fixture
def make_product(db_session):
    def _make(name="Widget", price=10000, stock=5, barcode=None):
        product = Product(name=name, price=price, stock=stock, barcode=barcode or f"BC-{name}")
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make


@pytest.fixture
def widget(make_product):
    return make_product("Widget", price=10000, stock=5, barcode="111")
