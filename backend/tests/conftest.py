import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.constraint_store import ConstraintStore
from app.services.grouping_session import clear_session_registry


@pytest.fixture()
def client():
    clear_session_registry()  # sessions are process-wide; start every test from an empty registry
    with TestClient(app) as test_client:
        yield test_client
    clear_session_registry()


@pytest.fixture
def six_names():
    return ["alice", "bob", "carol", "dave", "erin", "frank"]


@pytest.fixture
def alice_bob_store():
    store = ConstraintStore()
    store.add("alice", "bob")
    return store
