"""
Shared fixtures: settings, a fake Notion upstream and an app wired to both.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from busops.cli import build_seed_entries
from busops.core.config import Settings
from busops.core.container import Container
from busops.main import create_app
from busops.services.accounts import encode_seed_accounts
from busops.services.notion import NotionGateway

TEST_SECRET = "test-secret-key-for-busops-0123456789abcdef"
ADMIN_EMAIL = "admin@busops.example.com"
ADMIN_PASSWORD = "Secret1!"
MANAGER_EMAIL = "manager@busops.example.com"
MANAGER_PASSWORD = "Manag3r!"

BOOKINGS_DB = "bookings-db"
MAINTENANCE_DB = "maintenance-db"

# bcrypt cost 4 keeps hashing fast in tests
SEED_ACCOUNTS = encode_seed_accounts(build_seed_entries([
    f"1:{ADMIN_EMAIL}:Administrator:admin:{ADMIN_PASSWORD}",
    f"2:{MANAGER_EMAIL}:Manager:manager:{MANAGER_PASSWORD}:+91 90000 00000",
], rounds=4))


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        jwt_secret_key=TEST_SECRET,
        user_accounts=SEED_ACCOUNTS,
        account_store="memory",
        password_hash_rounds=4,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'busops.db'}",
        notion_api_key="secret_test_key",
        notion_bookings_db_id=BOOKINGS_DB,
        notion_maintenance_db_id=MAINTENANCE_DB,
        daily_sync=False,
        log_level="WARNING",
        log_format="console",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeNotion:
    """Scripted stand-in for the Notion API behind an httpx.MockTransport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._responses: Dict[Tuple[str, str], Tuple[int, Any]] = {}

    def respond(self, method: str, path: str, status: int = 200, json: Any = None) -> None:
        self._responses[(method, f"/v1/{path}")] = (status, json if json is not None else {})

    def calls(self, method: str, path: str) -> int:
        return sum(
            1 for request in self.requests
            if request.method == method and request.url.path == f"/v1/{path}"
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self._responses.get(
            (request.method, request.url.path),
            (404, {"object": "error", "status": 404, "message": "Could not find resource"}),
        )
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def notion_page(page_id: str, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"object": "page", "id": page_id, "properties": properties or {}}


@pytest.fixture
def settings_factory(tmp_path):
    def factory(**overrides) -> Settings:
        return make_settings(tmp_path, **overrides)
    return factory


@pytest.fixture
def settings(settings_factory):
    return settings_factory()


@pytest.fixture
def fake_notion():
    return FakeNotion()


@pytest.fixture
def gateway(settings, fake_notion):
    return NotionGateway(settings, transport=fake_notion.transport)


def build_container(settings: Settings, fake_notion: FakeNotion) -> Container:
    container = Container()
    container.settings.override(providers.Object(settings))
    container.notion_gateway.override(
        providers.Singleton(NotionGateway, settings=settings, transport=fake_notion.transport)
    )
    return container


@pytest.fixture
def container(settings, fake_notion):
    return build_container(settings, fake_notion)


@pytest.fixture
def client(container):
    """Test client with lifespan run (accounts seeded)."""
    with TestClient(create_app(container)) as test_client:
        yield test_client


def login(client: TestClient, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD) -> Dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return login(client)
