import pytest
from fastapi.testclient import TestClient

from manager_backend.api.main import create_app
from manager_store.config import Settings


class StubTitleResolver:
    """Title resolver that never touches the network."""

    def __init__(self, titles=None):
        self.titles = dict(titles or {})
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        return self.titles.get(url, "")


@pytest.fixture
def settings():
    """Settings with a test signing key and the cheapest bcrypt cost."""
    return Settings(secret_key="test-signing-key", bcrypt_rounds=4, title_fetch_timeout=1)

@pytest.fixture
def title_resolver():
    return StubTitleResolver({"https://example.org/page": "Example Page"})

@pytest.fixture
def app(settings, title_resolver):
    """A fresh application, so no state leaks between tests."""
    return create_app(settings, title_resolver=title_resolver)

@pytest.fixture
def client(app):
    """Fixture for FastAPI TestClient."""
    with TestClient(app) as c:
        yield c

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "password": "alicepassword123"
    }

@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "password": "bobpassword456"
    }

def register_and_auth(client, username, password):
    """Helper for registering then logging in to get a session token."""
    r1 = client.post("/api/register", json={"username": username, "password": password})
    assert r1.status_code in (201, 400)

    r2 = client.post("/api/login", json={"username": username, "password": password})
    assert r2.status_code == 200
    return r2.json()["token"]

@pytest.fixture
def auth_header(client, user_data):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    token = register_and_auth(client, user_data["username"], user_data["password"])
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def second_auth_header(client, second_user_data):
    """Returns auth header for second user."""
    token = register_and_auth(client, second_user_data["username"], second_user_data["password"])
    return {"Authorization": f"Bearer {token}"}
