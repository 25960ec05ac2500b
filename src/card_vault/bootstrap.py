"""Process-wide wiring for Card Vault Service.

``ServiceContainer.build()`` runs once at startup. It resolves database
credentials from the vault (when configured), creates the engine and the
vault client, and hands the same instances to every collaborator. Nothing is
re-resolved per request.
"""

from dataclasses import dataclass

from sqlalchemy.engine import make_url

from card_vault.config import Settings
from card_vault.domain.coordinator import CardVaultCoordinator
from card_vault.domain.names import SecretNameAllocator
from card_vault.infrastructure.database import Database
from card_vault.infrastructure.repository import SqlMetadataStore, UserRepository
from card_vault.infrastructure.vault import SecretsManagerVault, build_secrets_client
from card_vault.logging_config import get_logger

logger = get_logger(__name__)


def resolve_database_url(settings: Settings, vault: SecretsManagerVault) -> str:
    """Substitute vault-held credentials into the configured database URL.

    Args:
        settings: Application settings
        vault: Vault gateway used to read the credential secrets

    Returns:
        Database URL, with username and password replaced when credential
        secrets are configured

    Raises:
        SecretNotFound: If a configured credential secret does not exist
        VaultUnavailable: If the vault cannot be read
    """
    credentials = settings.database_credentials
    if not credentials.enabled:
        return settings.database_url

    username = vault.get_plain_secret(credentials.username_secret)
    password = vault.get_plain_secret(credentials.password_secret)
    url = make_url(settings.database_url).set(username=username, password=password)

    logger.info("database_credentials_resolved", username_secret=credentials.username_secret)
    return url.render_as_string(hide_password=False)


@dataclass
class ServiceContainer:
    """Long-lived collaborators shared by all requests."""

    settings: Settings
    database: Database
    vault: SecretsManagerVault
    metadata: SqlMetadataStore
    users: UserRepository
    coordinator: CardVaultCoordinator

    @classmethod
    def build(
        cls,
        settings: Settings,
        database: Database | None = None,
        vault: SecretsManagerVault | None = None,
    ) -> "ServiceContainer":
        """Create every collaborator from settings.

        Args:
            settings: Application settings
            database: Pre-built database (tests); built from settings if None
            vault: Pre-built vault gateway (tests); built from settings if None
        """
        if vault is None:
            client = build_secrets_client(
                region=settings.vault.region,
                endpoint_url=settings.vault.endpoint_url,
                connect_timeout=settings.vault.connect_timeout_seconds,
                read_timeout=settings.vault.read_timeout_seconds,
                max_attempts=settings.vault.max_attempts,
            )
            vault = SecretsManagerVault(
                client,
                recovery_window_days=settings.vault.recovery_window_days,
                force_delete=settings.vault.force_delete,
            )

        if database is None:
            database = Database.from_url(
                resolve_database_url(settings, vault),
                echo=settings.database_echo,
                statement_timeout_ms=settings.database_statement_timeout_ms,
            )

        metadata = SqlMetadataStore(database)
        coordinator = CardVaultCoordinator(
            metadata=metadata,
            vault=vault,
            allocator=SecretNameAllocator(settings.vault.secret_name_prefix),
        )

        logger.info("service_container_built", environment=settings.environment)
        return cls(
            settings=settings,
            database=database,
            vault=vault,
            metadata=metadata,
            users=UserRepository(database),
            coordinator=coordinator,
        )

    def close(self) -> None:
        self.database.dispose()
