"""
Pytest configuration and fixtures for StockPilot tests.
"""
import itertools
import os
import sys
import tempfile

import pytest

# Allow running pytest from either the repo root or from within `backend/`.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

# Point settings at a throwaway directory before importing app modules
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="stockpilot-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATA_DIR"] = _TEST_DATA_DIR
os.environ["STATE_FILE"] = os.path.join(_TEST_DATA_DIR, "stockpilot.json")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DATA_DIR, 'stockpilot.db')}"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture
def file_backend(tmp_path):
    from db.snapshot import JsonFileBackend

    return JsonFileBackend(str(tmp_path / "state.json"))


@pytest.fixture
def clock():
    """Monotonic fake clock in epoch milliseconds."""
    counter = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(counter)


@pytest.fixture
def store(file_backend, clock):
    from core.store import InventoryStore

    return InventoryStore(file_backend, clock=clock)


@pytest.fixture
def client(store, tmp_path):
    from fastapi.testclient import TestClient

    from db.snapshot import JsonFileBackend
    from main import app
    from routers.inventory import get_store
    from routers.state import get_state_file

    api_state = JsonFileBackend(str(tmp_path / "api_state.json"))
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_state_file] = lambda: api_state
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
