"""Fixtures for API integration tests"""
import pytest
from fastapi.testclient import TestClient

from daybook.api.middleware import limiter
from daybook.api.server import create_api_application

TEST_API_KEY = "test_key_123"


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest.fixture
def api_app(container, monkeypatch):
    """FastAPI app over the in-memory container with a known API key"""
    monkeypatch.setenv("API_KEYS", TEST_API_KEY)
    limiter.enabled = False
    yield create_api_application(container=container)
    limiter.enabled = True


@pytest.fixture
def client(api_app):
    with TestClient(api_app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(test_user_id):
    """Headers for an authenticated, identified request"""
    return {
        "Authorization": f"Bearer {TEST_API_KEY}",
        "X-User-Id": test_user_id,
    }


@pytest.fixture
def admin_headers(auth_headers):
    return {**auth_headers, "X-User-Admin": "true"}
