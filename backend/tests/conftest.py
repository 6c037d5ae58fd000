"""
Pytest fixtures for the stock billing backend.

Runs every test against a fresh in-memory SQLite schema and exposes a
FastAPI TestClient whose get_db dependency yields the test session.
"""

import os

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine, get_db
from models.product import Product
from models.users import User
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

PASSWORD = "Password123!"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db, username, role, first_name, last_name, is_active=True):
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=PASSWORD_HASH,
        role=role,
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def superadmin(db_session):
    return _make_user(db_session, "root", "superadmin", "Sam", "Super")


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, "ada", "admin", "Ada", "Admin")


@pytest.fixture
def other_admin(db_session):
    return _make_user(db_session, "otto", "admin", "Otto", "Other")


@pytest.fixture
def plain_user(db_session):
    return _make_user(db_session, "uma", "user", "Uma", "User")


@pytest.fixture
def make_product(db_session):
    """Factory creating committed products."""
    counter = {"n": 0}

    def _make(stock_count=5, price=10.0, name=None, is_active=True):
        counter["n"] += 1
        product = Product(
            name=name or f"Frame {counter['n']}",
            sku=f"SKU-{counter['n']:04d}",
            description="Test product",
            category="frames",
            price=price,
            stock_count=stock_count,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def product(make_product):
    return make_product(stock_count=5, price=10.0, name="Round Frame")


@pytest.fixture
def client(db_session):
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    """Bearer header for a user without going through /login."""
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}
