"""Fixtures for exercising the FastAPI app over SQLite and moto."""

import pytest
from fastapi.testclient import TestClient

from card_vault.api.main import create_app
from card_vault.bootstrap import ServiceContainer


@pytest.fixture
def container(settings, database, vault) -> ServiceContainer:
    """Service container built from test collaborators."""
    return ServiceContainer.build(settings, database=database, vault=vault)


@pytest.fixture
def client(settings, container):
    """Test client running the app lifespan."""
    app = create_app(settings, container)
    with TestClient(app) as test_client:
        yield test_client
