"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- Settings pointing at in-memory SQLite and a mocked Secrets Manager
- Database setup with the schema created in place
- A moto-backed Secrets Manager client and vault gateway
- Sample users
"""

import boto3
import pytest
from moto import mock_aws

from card_vault.config import Settings, VaultSettings
from card_vault.infrastructure.database import Database
from card_vault.infrastructure.repository import SqlMetadataStore, UserRepository
from card_vault.infrastructure.vault import SecretsManagerVault

TEST_DATABASE_URL = "sqlite://"
TEST_REGION = "us-east-1"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)


@pytest.fixture
def settings() -> Settings:
    """Test settings (no .env, SQLite, console logs)."""
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        environment="test",
        log_json=False,
        database_create_schema=False,
        vault=VaultSettings(region=TEST_REGION),
    )


@pytest.fixture
def database():
    """Fresh in-memory database with all tables created."""
    db = Database.from_url(TEST_DATABASE_URL)
    db.init_schema()

    yield db

    db.drop_schema()
    db.dispose()


@pytest.fixture
def metadata_store(database) -> SqlMetadataStore:
    return SqlMetadataStore(database)


@pytest.fixture
def user_repository(database) -> UserRepository:
    return UserRepository(database)


@pytest.fixture
def user_id(user_repository) -> int:
    """An Active user that owns no cards yet."""
    return user_repository.create("Ada Lovelace", "ada@example.com").user_id


@pytest.fixture
def other_user_id(user_repository) -> int:
    return user_repository.create("Alan Turing", "alan@example.com").user_id


@pytest.fixture
def secrets_client():
    """Secrets Manager client backed by moto."""
    with mock_aws():
        yield boto3.client("secretsmanager", region_name=TEST_REGION)


@pytest.fixture
def vault(secrets_client) -> SecretsManagerVault:
    """Vault gateway over the mocked Secrets Manager."""
    return SecretsManagerVault(secrets_client, recovery_window_days=7)
