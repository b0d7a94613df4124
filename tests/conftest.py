import os

# Must be set before importing app: load_dotenv() does not override existing env vars,
# so setting these here takes precedence over whatever is in .env.
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000,https://your-app-name.vercel.app")

import pytest
from fastapi.testclient import TestClient

from app import app, get_store
from client import LocalStorage, TaskClient
from store import TodoStore


@pytest.fixture
def store():
    """A fresh, empty store per test so ids always start at 1."""
    return TodoStore()


@pytest.fixture
def client(store):
    """
    A TestClient whose get_store dependency is overridden to use the per-test
    store. The store owned by app.state is never touched by tests.
    """
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app, raise_server_exceptions=True)
    app.dependency_overrides.clear()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def task_client(client, storage):
    """A TaskClient talking to the real app through the TestClient transport."""
    tc = TaskClient(api_url="http://testserver/api", storage=storage, http=client, timeout=1.0)
    yield tc
    tc.close()
