"""In-memory fakes for the metadata store and the vault gateway.

Both fakes count calls per method and can be told to fail a given step,
so coordinator tests can assert on call ordering and partial failures
without a database or AWS.
"""

from collections import Counter
from dataclasses import dataclass, field

import pytest

from card_vault.domain.card import CardPayload, RecordState
from card_vault.domain.coordinator import CardVaultCoordinator
from card_vault.domain.exceptions import (
    MetadataWriteFailed,
    SecretNotFound,
    VaultUnavailable,
)
from card_vault.domain.names import SecretNameAllocator
from card_vault.domain.ports import IMetadataStore, IVaultGateway

ACTIVE = RecordState.ACTIVE
INACTIVE = RecordState.INACTIVE


@dataclass
class _Entry:
    id: int
    name: str
    state: RecordState = ACTIVE


@dataclass
class _Link:
    id: int
    user_id: int
    entry_id: int
    state: RecordState = ACTIVE


@dataclass
class FakeMetadataStore(IMetadataStore):
    entries: list[_Entry] = field(default_factory=list)
    links: list[_Link] = field(default_factory=list)
    calls: Counter = field(default_factory=Counter)
    fail_link_insert: bool = False
    fail_link_deactivate: bool = False

    def _entry(self, name: str) -> _Entry | None:
        return next((e for e in self.entries if e.name == name), None)

    def _entry_by_id(self, entry_id: int) -> _Entry:
        return next(e for e in self.entries if e.id == entry_id)

    def links_for_user(self, user_id: int, state: RecordState) -> list[str]:
        self.calls["links_for_user"] += 1
        names = []
        for link in self.links:
            entry = self._entry_by_id(link.entry_id)
            if link.user_id == user_id and link.state == state and entry.state == state:
                names.append(entry.name)
        return names

    def create_link(self, user_id: int, name: str) -> None:
        self.calls["create_link"] += 1
        entry = _Entry(id=len(self.entries) + 1, name=name)
        self.entries.append(entry)
        if self.fail_link_insert:
            raise MetadataWriteFailed("card link insert failed")
        self.links.append(_Link(id=len(self.links) + 1, user_id=user_id, entry_id=entry.id))

    def deactivate_link(self, user_id: int, name: str) -> None:
        self.calls["deactivate_link"] += 1
        entry = self._entry(name)
        if entry is None:
            raise MetadataWriteFailed(f"Secret entry {name} does not exist")
        entry.state = INACTIVE
        if self.fail_link_deactivate:
            raise MetadataWriteFailed("card link update failed")
        for link in self.links:
            if link.entry_id == entry.id and link.user_id == user_id:
                link.state = INACTIVE

    def active_entries(self) -> list[str]:
        self.calls["active_entries"] += 1
        return [
            self._entry_by_id(link.entry_id).name
            for link in self.links
            if link.state == ACTIVE and self._entry_by_id(link.entry_id).state == ACTIVE
        ]

    def unlinked_entries(self) -> list[str]:
        self.calls["unlinked_entries"] += 1
        linked = {link.entry_id for link in self.links if link.state == ACTIVE}
        return [e.name for e in self.entries if e.state == ACTIVE and e.id not in linked]

    def dangling_links(self) -> list[str]:
        self.calls["dangling_links"] += 1
        return [
            self._entry_by_id(link.entry_id).name
            for link in self.links
            if link.state == ACTIVE and self._entry_by_id(link.entry_id).state == INACTIVE
        ]

    def inactive_entries(self) -> list[str]:
        self.calls["inactive_entries"] += 1
        return [e.name for e in self.entries if e.state == INACTIVE]

    def active_link_count(self, user_id: int) -> int:
        return len(self.links_for_user(user_id, ACTIVE))


@dataclass
class FakeVault(IVaultGateway):
    secrets: dict[str, CardPayload] = field(default_factory=dict)
    tombstoned: set[str] = field(default_factory=set)
    calls: Counter = field(default_factory=Counter)
    fail_store: bool = False
    fail_fetch: bool = False
    fail_remove: bool = False

    def store(self, name: str, payload: CardPayload) -> None:
        self.calls["store"] += 1
        if self.fail_store:
            raise VaultUnavailable("vault write timed out")
        self.secrets[name] = payload

    def fetch(self, name: str) -> CardPayload:
        self.calls["fetch"] += 1
        if self.fail_fetch:
            raise VaultUnavailable("vault read timed out")
        if name not in self.secrets:
            raise SecretNotFound(f"Secret {name} not found")
        return self.secrets[name]

    def remove(self, name: str) -> None:
        self.calls["remove"] += 1
        if self.fail_remove:
            raise VaultUnavailable("vault delete timed out")
        if self.secrets.pop(name, None) is not None:
            self.tombstoned.add(name)


@pytest.fixture
def fake_metadata() -> FakeMetadataStore:
    return FakeMetadataStore()


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def coordinator(fake_metadata, fake_vault) -> CardVaultCoordinator:
    """Coordinator wired to the in-memory fakes."""
    return CardVaultCoordinator(
        metadata=fake_metadata,
        vault=fake_vault,
        allocator=SecretNameAllocator(),
    )
