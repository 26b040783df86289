"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from presence_relay.channels.hub import hub
from presence_relay.main import app
from presence_relay.presence.lifecycle import lifecycle
from presence_relay.presence.registry import registry

from fakes import Core


@pytest.fixture
def core():
    """Fresh, isolated hub/registry/components for async unit tests."""
    return Core()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Isolate tests that go through the module-level app state."""
    yield
    hub.clear()
    registry.clear()
    lifecycle.states.clear()
    lifecycle.user_ids.clear()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)
