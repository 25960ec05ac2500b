"""Infrastructure layer exports."""

from card_vault.infrastructure.database import Database
from card_vault.infrastructure.repository import SqlMetadataStore, UserRepository
from card_vault.infrastructure.vault import SecretsManagerVault, build_secrets_client

__all__ = [
    "Database",
    "SqlMetadataStore",
    "UserRepository",
    "SecretsManagerVault",
    "build_secrets_client",
]
