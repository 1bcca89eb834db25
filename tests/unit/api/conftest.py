"""Fixtures for API unit tests: in-memory executor, fresh registry, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from fakes import FakeQueryExecutor

from auditcast.main import app
from auditcast.realtime.registry import ConnectionRegistry


@pytest.fixture
def api_executor():
    return FakeQueryExecutor(
        tenants={"u1": "t1", "u2": "t1", "u3": "t2"},
        names={"u1": "Ana", "u2": "Ben"},
    )


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def app_with_overrides(api_executor, registry):
    """App with database and connection registry overridden for testing."""
    from auditcast.api import dependencies

    app.dependency_overrides[dependencies.get_query_executor] = lambda: api_executor
    app.dependency_overrides[dependencies.get_connection_registry] = lambda: registry
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def actor_headers():
    return {"X-Actor-ID": "u1"}
