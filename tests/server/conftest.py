"""Server-specific test fixtures."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from starlette.testclient import TestClient

from videoracle.server.app import create_app

IDENTITY_HEADER = "X-Caller-Identity"


@pytest.fixture(autouse=True)
def clean_server_settings(clean_env):
    """Reset server settings and the metrics collector between tests."""
    import videoracle.server.config as config_module
    import videoracle.server.metrics as metrics_module

    config_module._settings = None
    metrics_module._metrics_collector = None
    yield
    config_module._settings = None
    metrics_module._metrics_collector = None


@pytest.fixture
def client(service) -> Generator[TestClient, None, None]:
    """Test client over the shared market fixture."""
    with TestClient(create_app(service=service)) as test_client:
        yield test_client


@pytest.fixture
def as_caller():
    """Headers naming the caller of a mutating call."""

    def _headers(identity: str) -> dict[str, str]:
        return {IDENTITY_HEADER: identity}

    return _headers
