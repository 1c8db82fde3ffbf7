"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every test gets a fresh owner id, so tests never see each other's habits.
"""
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_habits.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db
from app.main import app
from app.services import habit_registry

SQLITE_URL = "sqlite:///./test_habits.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def other_db():
    """A second, independent session, for two writers racing on the same rows."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def owner() -> str:
    return f"owner-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def client(owner):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        c.headers.update({"X-Owner-Id": owner})
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_habit(db, owner):
    """Create a habit for the test owner straight through the registry."""
    def _make(name: str = "Read 20 pages", **fields):
        return habit_registry.create_habit(db, owner, {"name": name, **fields})

    return _make
