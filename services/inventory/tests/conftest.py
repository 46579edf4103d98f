"""Shared fixtures for the Inventory service tests."""

import os

# The service engine is built at import time; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_manager.database import get_db, init_db
from inventory_manager.main import app


def make_item(**overrides: Any) -> Dict[str, Any]:
    """Build a valid create payload, overriding any field."""
    item = {
        "product_name": "Widget",
        "product_id": "P1",
        "category": "Hardware",
        "location": "Aisle 1",
        "available_quantity": 10,
        "reserved_quantity": 2,
        "on_hand_quantity": 8,
    }
    item.update(overrides)
    return item


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with the inventory schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def api(session_factory: sessionmaker) -> Iterator[None]:
    """Point the app's get_db dependency at the test engine."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(api: None) -> TestClient:
    # Not entered as a context manager, so the startup bootstrap is skipped
    return TestClient(app)
