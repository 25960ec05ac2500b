"""Card vault domain layer.

This package contains the card payload model, the error taxonomy, input
validation, secret name allocation, the repository/gateway interfaces and
the coordinator that keeps metadata and vault payloads consistent.
"""

from card_vault.domain.card import CardPayload, OrphanReport, RecordState, User
from card_vault.domain.coordinator import CardVaultCoordinator
from card_vault.domain.exceptions import (
    CardFetchFailed,
    CardStoreFailed,
    CardVaultError,
    MetadataError,
    MetadataReadFailed,
    MetadataWriteFailed,
    SecretNotFound,
    UserNotFound,
    ValidationFailed,
    VaultError,
    VaultUnavailable,
)
from card_vault.domain.names import SecretNameAllocator
from card_vault.domain.ports import IMetadataStore, IVaultGateway
from card_vault.domain.validation import ValidationStatus, validate_card

__all__ = [
    # Models
    "CardPayload",
    "OrphanReport",
    "RecordState",
    "User",
    # Exceptions
    "CardVaultError",
    "ValidationFailed",
    "MetadataError",
    "MetadataReadFailed",
    "MetadataWriteFailed",
    "VaultError",
    "VaultUnavailable",
    "SecretNotFound",
    "CardStoreFailed",
    "CardFetchFailed",
    "UserNotFound",
    # Services
    "CardVaultCoordinator",
    "SecretNameAllocator",
    "ValidationStatus",
    "validate_card",
    # Repository interfaces
    "IMetadataStore",
    "IVaultGateway",
]
