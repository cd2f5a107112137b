# tests/conftest.py
"""
Pytest configuration and fixtures.

Everything runs against an in-memory SQLite database (one shared
connection through StaticPool) and an httpx MockTransport, so no server,
database or network is needed.
"""

import threading

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from fuelogic.contacts import ContactDirectory
from fuelogic.db import build_session_factory, init_schema
from fuelogic.main import create_app
from fuelogic.settings import Settings
from fuelogic.tanks import ConfigurationStore
from fuelogic.webhooks import AlertDispatcher, WebhookRegistry, WebhookValidator

OWNER = "owner-a"
OTHER_OWNER = "owner-b"
AUTH_HEADERS = {"Authorization": "Bearer token-a"}
OTHER_AUTH_HEADERS = {"Authorization": "Bearer token-b"}

CONTACTS = [
    # id, owner_id, name, phone, email, kind, active
    ("c-1", OWNER, "Ana Souza", "+5511999990001", "ana@rede-sling.com.br", "interno", True),
    ("c-2", OWNER, "Bruno Lima", "+5511999990002", None, "interno", True),
    ("c-3", OWNER, "Carla Dias", "+5511999990003", None, "interno", False),
    ("c-4", OWNER, "Transportadora Sul", None, "sul@example.com", "externo", True),
]


class RecordingHandler:
    """
    MockTransport handler that records every request.

    routes maps a URL to a callable(request) -> httpx.Response; anything
    else answers 200 with {"ok": true}.
    """

    def __init__(self):
        self.requests = []
        self.routes = {}
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is not None:
            return route(request)
        return httpx.Response(200, json={"ok": True})

    def urls(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture
def engine():
    """Fresh in-memory database with the schema applied."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def seed_contacts(engine):
    """Insert the CONTACTS rows."""
    with engine.begin() as conn:
        for row in CONTACTS:
            conn.execute(
                text("""
                    INSERT INTO contacts (id, owner_id, name, phone, email, kind, active)
                    VALUES (:id, :owner_id, :name, :phone, :email, :kind, :active)
                """),
                dict(zip(("id", "owner_id", "name", "phone", "email", "kind", "active"), row)),
            )
    return [row[0] for row in CONTACTS]


@pytest.fixture
def contacts(session_factory, seed_contacts) -> ContactDirectory:
    return ContactDirectory(session_factory)


@pytest.fixture
def registry(session_factory, contacts) -> WebhookRegistry:
    """Registry that accepts any http(s) host (no DNS lookups in tests)."""
    return WebhookRegistry(session_factory, WebhookValidator(contacts, allow_internal=True))


@pytest.fixture
def config_store(session_factory) -> ConfigurationStore:
    return ConfigurationStore(session_factory)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def http_client(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    yield client
    client.close()


@pytest.fixture
def dispatcher(registry, contacts, http_client):
    """Dispatcher closed after the test, so abandoned attempts finish first."""
    with AlertDispatcher(registry, contacts, timeout_seconds=2.0, client=http_client) as dispatcher:
        yield dispatcher


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        log_json=False,
        auth_enabled=True,
        api_tokens=f"token-a:{OWNER},token-b:{OTHER_OWNER}",
        allow_internal_webhooks=True,
        webhook_timeout_seconds=2.0,
        sophia_chat_url=None,
    )


@pytest.fixture
def client(app_settings, engine, seed_contacts, handler):
    """TestClient around an app wired to the test database and mock transport."""
    app = create_app(
        settings=app_settings,
        engine=engine,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    with TestClient(app) as test_client:
        yield test_client


def tank(tanque, water=0.0, current=8000.0, capacity=10000.0, **extra):
    """Telemetry record as sent by the poller."""
    record = {
        "Cliente": "REDE SLING",
        "Unidade": "POSTO SLING 2",
        "IdUnidade": 776,
        "Tanque": tanque,
        "Produto": "GASOLINA COMUM",
        "QuantidadeAtual": current,
        "CapacidadeDoTanque": capacity,
        "QuantidadeDeAgua": water,
        "DataMedicao": "2025-06-01T10:00:00Z",
    }
    record.update(extra)
    return record
