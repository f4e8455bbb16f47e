# tests/conftest.py

"""
Pytest Fixtures - shared database, client and sample data for all tests

Every test runs against a fresh in-memory SQLite schema built from the ORM
metadata. The environment below must be set before `carver` is imported.
"""

import os

os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "development"
os.environ["ENFORCE_SCORE_RANGE"] = "false"
os.environ["METRICS_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from carver import crud
from carver import models  # noqa: F401
from carver.core.config import settings
from carver.db.base import Base
from carver.db.session import SessionLocal, engine
from carver.main import app
from carver.schemas.carver_matrix import CarverItemCreate, CarverMatrixCreate
from carver.schemas.user import AppUserCreate
from carver.services.carver_matrix_service import CarverMatrixService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def reset_database():
    """Drop and recreate every table so tests never share rows."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db):
    return CarverMatrixService(db)


@pytest.fixture
def fail_nth_commit():
    """Make the n-th commit of any session from SessionLocal fail as a lost connection."""
    listeners = []

    def _install(n):
        calls = {"count": 0}

        def _before_commit(session):
            calls["count"] += 1
            if calls["count"] == n:
                raise OperationalError("COMMIT", {}, Exception("server closed the connection"))

        event.listen(SessionLocal, "before_commit", _before_commit)
        listeners.append(_before_commit)

    yield _install
    for listener in listeners:
        event.remove(SessionLocal, "before_commit", listener)


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client():
    """TestClient without the lifespan; tables come from reset_database."""
    return TestClient(app)


@pytest.fixture
def make_token():
    """Sign a bearer token the way the identity provider would."""
    def _make(**claims):
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(email="alice@example.com"):
        return {"Authorization": f"Bearer {make_token(email=email)}"}
    return _headers


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def owner(db):
    return crud.user.create(
        db,
        obj_in=AppUserCreate(
            keycloak_id="kc-owner",
            username="owner",
            email="owner@example.com",
            full_name="Matrix Owner",
        ),
    )


@pytest.fixture
def other_owner(db):
    return crud.user.create(
        db,
        obj_in=AppUserCreate(
            keycloak_id="kc-other",
            username="other",
            email="other@example.com",
        ),
    )


@pytest.fixture
def make_matrix(service, owner):
    """Create a matrix through the lifecycle service; item names become items."""
    def _make(name="Water Plant", item_names=("Pump", "Valve"), owner_id=None, **fields):
        matrix_in = CarverMatrixCreate(
            name=name,
            items=[CarverItemCreate(item_name=item_name) for item_name in item_names],
            **fields,
        )
        return service.create(matrix_in, owner_id if owner_id is not None else owner.id)
    return _make
