"""Card operations spanning the relational store and the secret vault.

The two stores cannot be updated atomically, so every operation is a fixed
sequence of steps ordered to leave discoverable, rather than leaked, state
when a step fails:

- Store writes metadata before the vault payload. A vault failure leaves an
  Active link with no payload, which the orphan report surfaces.
- Delete requests vault removal before deactivating metadata. A metadata
  failure leaves an Active link whose payload is gone, never an Inactive link
  whose payload lives on unreferenced.

The vault cannot be searched by card number. Update and Delete resolve the
target by fetching each of the user's Active payloads in turn and comparing
card numbers, one vault round trip per card.

Partial failures are reported, never repaired here.
"""

from typing import Optional

import structlog

from card_vault.domain.card import CardPayload, OrphanReport, RecordState
from card_vault.domain.exceptions import (
    CardFetchFailed,
    CardStoreFailed,
    SecretNotFound,
    VaultError,
)
from card_vault.domain.names import SecretNameAllocator
from card_vault.domain.ports import IMetadataStore, IVaultGateway
from card_vault.domain.validation import (
    CARD_NUMBER,
    EXPIRY_DATE,
    require_field,
    require_user_id,
)

logger = structlog.get_logger(__name__)


class CardVaultCoordinator:
    """Store, update, delete and fetch cards across metadata and vault.

    Holds no card data between calls; every operation re-reads the vault.
    Safe to share across request threads as long as the collaborators are.
    """

    def __init__(
        self,
        metadata: IMetadataStore,
        vault: IVaultGateway,
        allocator: SecretNameAllocator,
    ) -> None:
        self.metadata = metadata
        self.vault = vault
        self.allocator = allocator

    def store(self, user_id: int, card_number: str, expiry_date: str) -> str:
        """Store a new card for a user.

        Steps:
        1. Validate inputs
        2. Allocate a fresh secret name
        3. Create the SecretEntry + CardLink rows
        4. Write the payload to the vault

        Args:
            user_id: Owning user
            card_number: Card number to store
            expiry_date: Expiry in MM/YY format

        Returns:
            The created secret name

        Raises:
            ValidationFailed: If an input is missing
            MetadataWriteFailed: If step 3 fails (nothing reached the vault)
            CardStoreFailed: If step 4 fails (metadata stays Active, payload-less)
        """
        require_user_id(user_id)
        require_field(card_number, CARD_NUMBER)
        require_field(expiry_date, EXPIRY_DATE)

        name = self.allocator.allocate()
        self.metadata.create_link(user_id, name)

        try:
            self.vault.store(name, CardPayload(card_number=card_number, expiry_date=expiry_date))
        except VaultError as e:
            logger.error(
                "card_payload_store_failed",
                user_id=user_id,
                secret_name=name,
                error_type=type(e).__name__,
            )
            raise CardStoreFailed(
                f"Card metadata {name} created for user {user_id} but payload was not stored"
            ) from e

        logger.info("card_stored", user_id=user_id, secret_name=name)
        return name

    def update(self, user_id: int, card_number: str, new_payload: CardPayload) -> bool:
        """Overwrite the payload of the user's card matching ``card_number``.

        Lifecycle state never changes; only the vault payload does.

        Returns:
            True if a matching card was found and overwritten, False otherwise

        Raises:
            ValidationFailed: If an input is missing
            MetadataReadFailed: If the link listing fails
            VaultUnavailable: If the vault fails during the scan or the write
        """
        require_user_id(user_id)
        require_field(card_number, CARD_NUMBER)
        require_field(new_payload.card_number, CARD_NUMBER)
        require_field(new_payload.expiry_date, EXPIRY_DATE)

        names = self.metadata.links_for_user(user_id, RecordState.ACTIVE)
        name = self._find_card(user_id, names, card_number)
        if name is None:
            logger.info("card_update_no_match", user_id=user_id, scanned=len(names))
            return False

        self.vault.store(name, new_payload)
        logger.info("card_updated", user_id=user_id, secret_name=name)
        return True

    def delete(self, user_id: int, card_number: str) -> bool:
        """Delete the user's card matching ``card_number``.

        Vault removal is requested before the metadata is deactivated, so a
        failed deactivation can be retried by repeating the whole call.

        Returns:
            True if a matching card was found and deleted, False otherwise

        Raises:
            ValidationFailed: If an input is missing
            MetadataReadFailed: If the link listing fails
            VaultUnavailable: If the vault fails during the scan or removal
            MetadataWriteFailed: If deactivation fails after removal
        """
        require_user_id(user_id)
        require_field(card_number, CARD_NUMBER)

        names = self.metadata.links_for_user(user_id, RecordState.ACTIVE)
        name = self._find_card(user_id, names, card_number)
        if name is None:
            logger.info("card_delete_no_match", user_id=user_id, scanned=len(names))
            return False

        self.vault.remove(name)
        self.metadata.deactivate_link(user_id, name)

        logger.info("card_deleted", user_id=user_id, secret_name=name)
        return True

    def fetch_all(self, user_id: int) -> list[CardPayload]:
        """Fetch every Active card of a user, in link insertion order.

        Any single vault failure fails the whole call; partial lists are
        never returned.

        Raises:
            ValidationFailed: If user_id is missing
            MetadataReadFailed: If the link listing fails
            CardFetchFailed: If any payload cannot be read
        """
        require_user_id(user_id)

        names = self.metadata.links_for_user(user_id, RecordState.ACTIVE)
        cards = []
        for name in names:
            try:
                cards.append(self.vault.fetch(name))
            except VaultError as e:
                logger.error(
                    "card_fetch_failed",
                    user_id=user_id,
                    secret_name=name,
                    error_type=type(e).__name__,
                )
                raise CardFetchFailed(
                    f"Failed to fetch card {name} for user {user_id}"
                ) from e

        logger.debug("cards_fetched", user_id=user_id, count=len(cards))
        return cards

    def detect_orphans(self) -> OrphanReport:
        """Report inconsistent states left by partial failures.

        Combines the relational detection queries with a vault read of
        every Active entry (payload missing) and every Inactive entry
        (payload still readable). Read-only.

        Raises:
            MetadataReadFailed: If a detection query fails
            VaultUnavailable: If a vault read fails for a reason other
                than a missing secret
        """
        unlinked = self.metadata.unlinked_entries()
        dangling = self.metadata.dangling_links()

        missing = [name for name in self.metadata.active_entries() if not self._payload_exists(name)]
        leaked = [name for name in self.metadata.inactive_entries() if self._payload_exists(name)]

        report = OrphanReport(
            unlinked_entries=unlinked,
            dangling_links=dangling,
            missing_payloads=missing,
            leaked_payloads=leaked,
        )
        logger.info(
            "orphan_scan_completed",
            unlinked_entries=len(unlinked),
            dangling_links=len(dangling),
            missing_payloads=len(missing),
            leaked_payloads=len(leaked),
        )
        return report

    def _payload_exists(self, name: str) -> bool:
        try:
            self.vault.fetch(name)
        except SecretNotFound:
            return False
        return True

    def _find_card(self, user_id: int, names: list[str], card_number: str) -> Optional[str]:
        """Linear scan for the secret name holding ``card_number``.

        Entries without a live payload cannot match and are skipped.
        """
        for name in names:
            try:
                payload = self.vault.fetch(name)
            except SecretNotFound:
                logger.warning("card_payload_missing", user_id=user_id, secret_name=name)
                continue

            if payload.matches(card_number):
                return name

        return None
