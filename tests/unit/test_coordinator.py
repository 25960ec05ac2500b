"""Unit tests for CardVaultCoordinator.

The coordinator runs against in-memory fakes of the metadata store and the
vault gateway (see conftest.py), so every step of the multi-store protocol
can be observed and failed independently.
"""

import pytest

from card_vault.domain.card import CardPayload, RecordState
from card_vault.domain.exceptions import (
    CardFetchFailed,
    CardStoreFailed,
    MetadataWriteFailed,
    SecretNotFound,
    ValidationFailed,
    VaultUnavailable,
)

USER_A = 1
USER_B = 2
CARD = "4111111111111112"
EXPIRY = "12/30"


class TestStore:
    """Tests for storing a card."""

    def test_store_then_fetch_all_round_trip(self, coordinator) -> None:
        """Test that a stored card comes back unchanged."""
        coordinator.store(USER_A, CARD, EXPIRY)

        cards = coordinator.fetch_all(USER_A)

        assert cards == [CardPayload(card_number=CARD, expiry_date=EXPIRY)]
        assert cards[0].to_dict() == {"cardNumber": CARD, "expiryDate": EXPIRY}

    def test_store_returns_allocated_name(self, coordinator, fake_metadata, fake_vault) -> None:
        name = coordinator.store(USER_A, CARD, EXPIRY)

        assert name.startswith("creditcard-")
        assert fake_metadata.links_for_user(USER_A, RecordState.ACTIVE) == [name]
        assert name in fake_vault.secrets

    def test_store_writes_metadata_before_vault(self, coordinator, fake_metadata, fake_vault) -> None:
        """Test that a metadata failure stops the protocol before the vault is touched."""
        fake_metadata.fail_link_insert = True

        with pytest.raises(MetadataWriteFailed):
            coordinator.store(USER_A, CARD, EXPIRY)

        assert fake_vault.calls["store"] == 0

    @pytest.mark.parametrize("user_id", [0, None])
    def test_store_rejects_missing_user_before_any_call(
        self, coordinator, fake_metadata, fake_vault, user_id
    ) -> None:
        with pytest.raises(ValidationFailed, match="Provide correct User Id details"):
            coordinator.store(user_id, CARD, EXPIRY)

        assert sum(fake_metadata.calls.values()) == 0
        assert sum(fake_vault.calls.values()) == 0

    @pytest.mark.parametrize(
        "card_number,expiry_date,message",
        [
            ("", EXPIRY, "Card Number is required"),
            (None, EXPIRY, "Card Number is required"),
            (CARD, "  ", "Expiry Date is required"),
            (CARD, None, "Expiry Date is required"),
        ],
    )
    def test_store_rejects_missing_fields(
        self, coordinator, fake_metadata, fake_vault, card_number, expiry_date, message
    ) -> None:
        with pytest.raises(ValidationFailed, match=message):
            coordinator.store(USER_A, card_number, expiry_date)

        assert sum(fake_metadata.calls.values()) == 0
        assert sum(fake_vault.calls.values()) == 0

    def test_vault_failure_leaves_detectable_orphan(self, coordinator, fake_vault) -> None:
        """Test that a failed vault write surfaces on fetch and in the orphan report."""
        fake_vault.fail_store = True

        with pytest.raises(CardStoreFailed) as exc_info:
            coordinator.store(USER_A, CARD, EXPIRY)

        assert isinstance(exc_info.value.__cause__, VaultUnavailable)
        fake_vault.fail_store = False

        with pytest.raises(CardFetchFailed) as fetch_info:
            coordinator.fetch_all(USER_A)
        assert isinstance(fetch_info.value.__cause__, SecretNotFound)

        report = coordinator.detect_orphans()
        assert len(report.missing_payloads) == 1
        assert report.unlinked_entries == []
        assert report.dangling_links == []

    def test_each_store_creates_a_new_card(self, coordinator) -> None:
        """Test that storing the same number twice keeps two cards."""
        first = coordinator.store(USER_A, CARD, EXPIRY)
        second = coordinator.store(USER_A, CARD, "01/31")

        assert first != second
        assert len(coordinator.fetch_all(USER_A)) == 2


class TestUpdate:
    """Tests for updating a card's payload."""

    def test_update_overwrites_payload(self, coordinator, fake_metadata) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        updated = coordinator.update(USER_A, CARD, CardPayload(CARD, "06/32"))

        assert updated is True
        assert coordinator.fetch_all(USER_A) == [CardPayload(CARD, "06/32")]
        assert fake_metadata.active_link_count(USER_A) == 1

    def test_update_can_replace_card_number(self, coordinator) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        coordinator.update(USER_A, CARD, CardPayload("5555555555554444", EXPIRY))

        assert coordinator.fetch_all(USER_A) == [CardPayload("5555555555554444", EXPIRY)]

    def test_update_twice_keeps_one_link(self, coordinator, fake_metadata) -> None:
        """Test that repeating an update yields one card with the latest payload."""
        coordinator.store(USER_A, CARD, EXPIRY)
        payload = CardPayload(CARD, "06/32")

        assert coordinator.update(USER_A, CARD, payload) is True
        assert coordinator.update(USER_A, CARD, payload) is True

        assert fake_metadata.active_link_count(USER_A) == 1
        assert coordinator.fetch_all(USER_A) == [payload]

    def test_update_without_match_returns_false(self, coordinator, fake_vault) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        updated = coordinator.update(USER_A, "5555555555554444", CardPayload("5555555555554444", EXPIRY))

        assert updated is False
        assert fake_vault.calls["store"] == 1

    def test_update_does_not_touch_metadata_state(self, coordinator, fake_metadata) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        coordinator.update(USER_A, CARD, CardPayload(CARD, "06/32"))

        assert fake_metadata.calls["create_link"] == 1
        assert fake_metadata.calls["deactivate_link"] == 0

    def test_update_rejects_missing_expiry(self, coordinator, fake_metadata) -> None:
        with pytest.raises(ValidationFailed, match="Expiry Date is required"):
            coordinator.update(USER_A, CARD, CardPayload(CARD, ""))

        assert fake_metadata.calls["links_for_user"] == 0

    def test_update_propagates_vault_unavailable(self, coordinator, fake_vault) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)
        fake_vault.fail_fetch = True

        with pytest.raises(VaultUnavailable):
            coordinator.update(USER_A, CARD, CardPayload(CARD, "06/32"))


class TestDelete:
    """Tests for deleting a card."""

    def test_delete_second_of_three_cards(self, coordinator, fake_metadata, fake_vault) -> None:
        """Test deleting the middle card leaves the other two and tombstones the payload."""
        coordinator.store(USER_A, "4111111111111112", EXPIRY)
        deleted_name = coordinator.store(USER_A, "5555555555554444", EXPIRY)
        coordinator.store(USER_A, "4012888888881881", EXPIRY)

        deleted = coordinator.delete(USER_A, "5555555555554444")

        assert deleted is True
        assert fake_metadata.active_link_count(USER_A) == 2
        assert [card.card_number for card in coordinator.fetch_all(USER_A)] == [
            "4111111111111112",
            "4012888888881881",
        ]
        with pytest.raises(SecretNotFound):
            fake_vault.fetch(deleted_name)

    def test_delete_twice_returns_false_second_time(self, coordinator) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        assert coordinator.delete(USER_A, CARD) is True
        assert coordinator.delete(USER_A, CARD) is False

    def test_delete_removes_vault_entry_before_metadata(self, coordinator, fake_metadata, fake_vault) -> None:
        """Test that a vault failure leaves metadata Active."""
        coordinator.store(USER_A, CARD, EXPIRY)
        fake_vault.fail_remove = True

        with pytest.raises(VaultUnavailable):
            coordinator.delete(USER_A, CARD)

        assert fake_metadata.calls["deactivate_link"] == 0
        assert fake_metadata.active_link_count(USER_A) == 1

    def test_failed_deactivation_is_reported_and_retry_is_safe(
        self, coordinator, fake_metadata, fake_vault
    ) -> None:
        """Test a link left Active after its entry went Inactive shows up as dangling."""
        name = coordinator.store(USER_A, CARD, EXPIRY)
        fake_metadata.fail_link_deactivate = True

        with pytest.raises(MetadataWriteFailed):
            coordinator.delete(USER_A, CARD)

        assert name not in fake_vault.secrets
        report = coordinator.detect_orphans()
        assert report.dangling_links == [name]

        fake_metadata.fail_link_deactivate = False
        assert coordinator.delete(USER_A, CARD) is False

    def test_delete_without_match_does_not_remove(self, coordinator, fake_vault) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        assert coordinator.delete(USER_A, "5555555555554444") is False
        assert fake_vault.calls["remove"] == 0

    def test_delete_rejects_missing_card_number(self, coordinator, fake_metadata) -> None:
        with pytest.raises(ValidationFailed, match="Card Number is required"):
            coordinator.delete(USER_A, "")

        assert fake_metadata.calls["links_for_user"] == 0


class TestFetchAll:
    """Tests for listing a user's cards."""

    def test_fetch_all_without_cards(self, coordinator) -> None:
        assert coordinator.fetch_all(USER_A) == []

    def test_fetch_all_preserves_insertion_order(self, coordinator) -> None:
        numbers = ["4111111111111112", "5555555555554444", "4012888888881881"]
        for number in numbers:
            coordinator.store(USER_A, number, EXPIRY)

        assert [card.card_number for card in coordinator.fetch_all(USER_A)] == numbers

    def test_fetch_all_never_crosses_users(self, coordinator) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)
        coordinator.store(USER_B, "5555555555554444", EXPIRY)

        assert coordinator.fetch_all(USER_A) == [CardPayload(CARD, EXPIRY)]
        assert coordinator.fetch_all(USER_B) == [CardPayload("5555555555554444", EXPIRY)]

    def test_scan_never_matches_another_users_card(self, coordinator) -> None:
        coordinator.store(USER_B, CARD, EXPIRY)

        assert coordinator.delete(USER_A, CARD) is False
        assert coordinator.update(USER_A, CARD, CardPayload(CARD, "06/32")) is False
        assert coordinator.fetch_all(USER_B) == [CardPayload(CARD, EXPIRY)]

    def test_fetch_all_fails_whole_call_on_vault_error(self, coordinator, fake_vault) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)
        coordinator.store(USER_A, "5555555555554444", EXPIRY)
        fake_vault.fail_fetch = True

        with pytest.raises(CardFetchFailed):
            coordinator.fetch_all(USER_A)

    def test_fetch_all_rejects_zero_user(self, coordinator, fake_metadata) -> None:
        with pytest.raises(ValidationFailed):
            coordinator.fetch_all(0)

        assert fake_metadata.calls["links_for_user"] == 0


class TestDetectOrphans:
    """Tests for the orphan report."""

    def test_clean_store(self, coordinator) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)

        report = coordinator.detect_orphans()

        assert report.is_clean

    def test_unlinked_entry_after_link_insert_failure(self, coordinator, fake_metadata, fake_vault) -> None:
        fake_metadata.fail_link_insert = True

        with pytest.raises(MetadataWriteFailed):
            coordinator.store(USER_A, CARD, EXPIRY)

        report = coordinator.detect_orphans()
        assert len(report.unlinked_entries) == 1
        assert report.missing_payloads == []
        assert not report.is_clean

    def test_scan_skips_missing_payload(self, coordinator, fake_vault) -> None:
        """Test that a card whose payload is gone does not hide later matches."""
        missing = coordinator.store(USER_A, "5555555555554444", EXPIRY)
        coordinator.store(USER_A, CARD, EXPIRY)
        del fake_vault.secrets[missing]

        assert coordinator.update(USER_A, CARD, CardPayload(CARD, "06/32")) is True
        assert coordinator.detect_orphans().missing_payloads == [missing]

    def test_inactive_entry_with_live_payload_is_leaked(self, coordinator, fake_metadata) -> None:
        """Test metadata deactivated while the vault payload stayed readable."""
        name = coordinator.store(USER_A, CARD, EXPIRY)
        fake_metadata.deactivate_link(USER_A, name)

        report = coordinator.detect_orphans()

        assert report.leaked_payloads == [name]
        assert report.to_dict()["leaked_payloads"] == [name]
        assert not report.is_clean

    def test_completed_delete_is_not_leaked(self, coordinator, fake_metadata) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)
        coordinator.delete(USER_A, CARD)

        report = coordinator.detect_orphans()

        assert fake_metadata.calls["inactive_entries"] == 1
        assert report.leaked_payloads == []
        assert report.is_clean

    def test_vault_outage_propagates(self, coordinator, fake_vault) -> None:
        coordinator.store(USER_A, CARD, EXPIRY)
        fake_vault.fail_fetch = True

        with pytest.raises(VaultUnavailable):
            coordinator.detect_orphans()
