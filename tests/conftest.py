"""
Pytest Configuration and Shared Fixtures

In-memory SQLite, a signed-in test user, fake vendor clients and
httpx.MockTransport helpers shared by all test modules.
"""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from aeo.auth import get_current_user, limiter
from aeo.cache import degradation_cache
from aeo.database import User
from aeo.database.session import configure_engine, create_db_engine, get_session_factory, init_db


# ============================================================================
# HTTP HELPERS
# ============================================================================

def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


class RecordingTransport(httpx.MockTransport):
    """MockTransport answering with queued responses and recording requests."""

    def __init__(self, *responses: httpx.Response):
        self.requests: List[httpx.Request] = []
        self._responses = list(responses)
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def dataforseo_envelope(result: Optional[List[Dict[str, Any]]], status_code: int = 20000) -> Dict[str, Any]:
    """Minimal DataForSEO v3 response around one task's result."""
    return {
        "status_code": status_code,
        "status_message": "Ok." if status_code == 20000 else "Error.",
        "tasks": [{"status_code": 20000, "status_message": "Ok.", "result": result}],
    }


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    configure_engine(engine)
    init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_user(db_session) -> User:
    user = User(id="user-123", email="owner@example.com", first_name="Test", last_name="Owner")
    db_session.add(user)
    db_session.commit()
    return user


# ============================================================================
# FAKE VENDOR CLIENTS
# ============================================================================

class FakeClients:
    """Stands in for ExternalAPIClients; every vendor defaults to unconfigured."""

    def __init__(self, **clients: Any):
        self.dataforseo = clients.get("dataforseo")
        self.jina = clients.get("jina")
        self.perplexity = clients.get("perplexity")
        self.firecrawl = clients.get("firecrawl")
        self.apify = clients.get("apify")
        self.llm = clients.get("llm")
        self.images = clients.get("images", MagicMock())
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_clients() -> FakeClients:
    return FakeClients()


def make_llm(*responses: Any) -> MagicMock:
    """LLM double whose complete_json returns the given ApiResults in order."""
    llm = MagicMock()
    llm.default_provider = "anthropic"
    llm.complete_json = AsyncMock(side_effect=list(responses))
    llm.complete = AsyncMock()
    return llm


# ============================================================================
# APPLICATION
# ============================================================================

@pytest.fixture
def app(db_engine, test_user, fake_clients):
    """The FastAPI app with auth and vendor clients overridden."""
    from api.dependencies import get_client_factory, get_clients
    from api.main import app as fastapi_app

    async def override_clients():
        yield fake_clients

    fastapi_app.dependency_overrides[get_current_user] = lambda: test_user
    fastapi_app.dependency_overrides[get_clients] = override_clients
    fastapi_app.dependency_overrides[get_client_factory] = lambda: (lambda: fake_clients)
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


# ============================================================================
# GLOBAL STATE
# ============================================================================

@pytest.fixture(autouse=True)
def reset_global_state():
    """Rate limits and the degradation cache are process-wide."""
    limiter.reset()
    degradation_cache.clear()
    with patch("aeo.errors.degradation.get_redis_cache", return_value=None):
        yield
    limiter.reset()
    degradation_cache.clear()
