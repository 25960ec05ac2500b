"""Repository and gateway interfaces for the card vault domain.

The coordinator depends on these contracts; the infrastructure layer
implements them (``SqlMetadataStore`` and ``SecretsManagerVault``). Tests
substitute in-memory fakes.
"""

from abc import ABC, abstractmethod

from card_vault.domain.card import CardPayload, RecordState


class IMetadataStore(ABC):
    """Relational linkage between users and vault secret names.

    Each method runs in its own local transaction against the relational
    store and knows nothing about the vault.
    """

    @abstractmethod
    def links_for_user(self, user_id: int, state: RecordState) -> list[str]:
        """List secret names linked to a user, in insertion order.

        Args:
            user_id: Owning user
            state: Only links (and their secret entries) in this state

        Raises:
            MetadataReadFailed: On any relational failure
        """
        pass

    @abstractmethod
    def create_link(self, user_id: int, name: str) -> None:
        """Insert an Active secret entry, then an Active card link to it.

        The two inserts are separate statements. If the card link insert
        fails, the secret entry row stays behind as an orphan.

        Raises:
            MetadataWriteFailed: If either insert fails
        """
        pass

    @abstractmethod
    def deactivate_link(self, user_id: int, name: str) -> None:
        """Transition the secret entry, then its card link(s), to Inactive.

        Raises:
            MetadataWriteFailed: If either transition fails
        """
        pass

    @abstractmethod
    def active_entries(self) -> list[str]:
        """Names of every Active card link whose secret entry is Active."""
        pass

    @abstractmethod
    def unlinked_entries(self) -> list[str]:
        """Names of Active secret entries with no Active card link."""
        pass

    @abstractmethod
    def dangling_links(self) -> list[str]:
        """Names behind Active card links whose secret entry is Inactive."""
        pass

    @abstractmethod
    def inactive_entries(self) -> list[str]:
        """Names of every Inactive secret entry, in insertion order.

        Input to the vault leak check: an Inactive entry whose payload can
        still be read was deactivated without its vault removal taking effect.
        """
        pass


class IVaultGateway(ABC):
    """Name-addressed access to card payloads in the secret vault."""

    @abstractmethod
    def store(self, name: str, payload: CardPayload) -> None:
        """Create or overwrite the payload under ``name``.

        Raises:
            VaultUnavailable: On transport or authorization errors
        """
        pass

    @abstractmethod
    def fetch(self, name: str) -> CardPayload:
        """Read and decode the payload under ``name``.

        Raises:
            SecretNotFound: If no live entry exists under ``name``
            VaultUnavailable: On any other failure
        """
        pass

    @abstractmethod
    def remove(self, name: str) -> None:
        """Request deletion of ``name``.

        Deletion may be soft and asynchronous. Removing a missing or
        already-deleting entry succeeds.

        Raises:
            VaultUnavailable: On transport or authorization errors
        """
        pass
