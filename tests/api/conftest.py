"""Shared fixtures for API tests."""

from typing import AsyncIterator, Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_shopify_client
from app.infrastructure.stores import (
    InMemorySettingsStore,
    InMemorySyncLogStore,
    get_settings_store,
    get_sync_log_store,
)
from app.main import app

AUTH = {"token": "shpat_test", "shop": "acme.myshopify.com"}


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    """Fresh settings store for one test."""
    return InMemorySettingsStore()


@pytest.fixture
def sync_log_store() -> InMemorySyncLogStore:
    """Fresh sync log store for one test."""
    return InMemorySyncLogStore()


@pytest.fixture
def client(
    settings_store: InMemorySettingsStore,
    sync_log_store: InMemorySyncLogStore,
) -> Iterator[TestClient]:
    """Create test client over in-memory stores."""
    app.dependency_overrides[get_settings_store] = lambda: settings_store
    app.dependency_overrides[get_sync_log_store] = lambda: sync_log_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def shop_client(client: TestClient, mock_client: MagicMock) -> TestClient:
    """Create test client whose Shopify calls go to ``mock_client``."""

    async def override() -> AsyncIterator[MagicMock]:
        yield mock_client

    app.dependency_overrides[get_shopify_client] = override
    return client


@pytest.fixture
def auth() -> dict[str, str]:
    """Get the token and shop query parameters."""
    return dict(AUTH)
