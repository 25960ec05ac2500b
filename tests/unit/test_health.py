"""Unit tests for health check endpoint."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from card_vault.api.main import create_app


@pytest.fixture
def mock_container(settings):
    """Service container with a mocked database and vault."""
    container = MagicMock()
    container.settings = settings
    container.database.ping.return_value = True
    container.vault.health_check.return_value = True
    return container


def test_health_check_success(settings, mock_container):
    """Test health check returns 200 when database is healthy."""
    with TestClient(create_app(settings, mock_container)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["service"] == "card-vault"
    assert response.json()["environment"] == "test"
    assert response.json()["checks"] == {"database": "ok", "vault": "ok"}


def test_health_check_database_failure(settings, mock_container):
    """Test health check returns 503 when database connection fails."""
    mock_container.database.ping.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    with TestClient(create_app(settings, mock_container)) as client:
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    mock_container.close.assert_called_once()


def test_health_check_vault_failure(settings, mock_container):
    """Test health check returns 503 when the vault does not answer."""
    mock_container.vault.health_check.return_value = False

    with TestClient(create_app(settings, mock_container)) as client:
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["checks"] == {"database": "ok", "vault": "unavailable"}


def test_docs_disabled_outside_debug(settings, mock_container):
    with TestClient(create_app(settings, mock_container)) as client:
        assert client.get("/docs").status_code == 404
