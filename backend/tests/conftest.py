"""Pytest fixtures: per-test SQLite database file, isolated and disposable."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.database import Base, configure_sqlite, get_db
from app.main import app

# Import all models so they register with Base.metadata
from app import models  # noqa: F401
from app.models.user import User


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test engine.

    Every transaction takes the SQLite write lock, so sessions opened from
    this factory in a test should be short-lived (``with session_factory() as s:``).
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin(session_factory):
    """An admin user, created directly in the database."""
    return create_test_admin(session_factory)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def auth(user: dict) -> dict:
    """Request headers identifying ``user``."""
    return {"X-User-Id": user["user_id"]}


def create_test_user(client: TestClient, name: str = "Test User", phone: str | None = "11999990000") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"name": name, "phone": phone})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_admin(session_factory, name: str = "Admin", phone: str = "11900000000") -> dict:
    """Helper — insert an admin user and return it in API shape."""
    with session_factory() as s:
        user = User(name=name, phone=phone, is_admin=True)
        s.add(user)
        s.commit()
        return {"user_id": user.user_id, "name": user.name, "phone": user.phone, "is_admin": True}


def create_test_product(client: TestClient, admin: dict, **overrides) -> dict:
    """Helper — POST /api/products as admin and return response JSON."""
    body = {
        "name": "Coffee Beans 1kg",
        "description": "Single origin",
        "category": "Groceries",
        "original_price": "89.90",
        "group_price": "59.90",
        "min_people": 3,
        "stock": 100,
    }
    body.update(overrides)
    resp = client.post("/api/products/", json=body, headers=auth(admin))
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_group(client: TestClient, user: dict, product_id: int, phone: str | None = None) -> dict:
    """Helper — POST /api/groups (caller auto-joins) and return response JSON."""
    body = {"product_id": product_id}
    if phone is not None:
        body["phone"] = phone
    resp = client.post("/api/groups/", json=body, headers=auth(user))
    assert resp.status_code == 201, resp.text
    return resp.json()
