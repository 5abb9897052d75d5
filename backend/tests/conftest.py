"""
conftest.py - Shared test fixtures for the Student Records API

Provides an isolated in-memory SQLite StudentStore per test, a FastAPI
TestClient bound to it, a raw session for service-level tests, and a
factory for creating students through the API.
"""

import pytest
from fastapi.testclient import TestClient

from student_api.database import StudentStore
from student_api.main import create_app

BASE = "/api/v1/students"


@pytest.fixture
def store():
    """Fresh in-memory store with the schema created."""
    store = StudentStore("sqlite://")
    store.create_tables()
    yield store
    store.drop_tables()
    store.dispose()


@pytest.fixture
def db_session(store):
    session = store.session()
    yield session
    session.close()


@pytest.fixture
def client(store):
    app = create_app(store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_student(client):
    """Create a student through the API and return its serialized data."""
    def _make(**overrides):
        payload = {
            "name": "Test Student",
            "marks": 60,
            "course": "CS",
            "city": "Mumbai",
            "subjects": ["Python"],
        }
        payload.update(overrides)
        resp = client.post(f"{BASE}/create", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _make
