"""Domain models for stored cards.

The card payload is the only place a card number lives. It is held by the
secret vault; the relational side only knows the secret name.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class RecordState(str, enum.Enum):
    """Lifecycle state shared by users, secret entries and card links.

    The only transition is ACTIVE -> INACTIVE.
    """

    ACTIVE = "Active"
    INACTIVE = "Inactive"


@dataclass(frozen=True)
class CardPayload:
    """Vault-resident card data (sensitive).

    Attributes:
        card_number: Full card number (PAN)
        expiry_date: Expiry in MM/YY format
    """

    card_number: str
    expiry_date: str

    def __repr__(self) -> str:
        return f"CardPayload(card_number='****{self.card_number[-4:]}', expiry_date='{self.expiry_date}')"

    def matches(self, card_number: str) -> bool:
        """Check whether this payload holds the given card number."""
        return self.card_number == card_number

    def to_dict(self) -> dict[str, str]:
        """Convert to the vault document layout.

        Returns:
            Dictionary with ``cardNumber`` and ``expiryDate`` keys
        """
        return {"cardNumber": self.card_number, "expiryDate": self.expiry_date}

    @classmethod
    def from_dict(cls, data: dict) -> "CardPayload":
        """Create a payload from a vault document.

        Args:
            data: Dictionary produced by ``to_dict()``

        Returns:
            CardPayload instance

        Raises:
            ValueError: If a required key is missing or not a string
        """
        card_number = data.get("cardNumber")
        expiry_date = data.get("expiryDate")
        if not isinstance(card_number, str) or not isinstance(expiry_date, str):
            raise ValueError("Card document must contain string cardNumber and expiryDate")
        return cls(card_number=card_number, expiry_date=expiry_date)


@dataclass(frozen=True)
class OrphanReport:
    """Inconsistent states left behind by partial multi-step failures.

    Attributes:
        unlinked_entries: Active secret entries with no active card link
            (card link insert failed during Store)
        dangling_links: Active card links whose secret entry is inactive
            (card link transition failed during Delete)
        missing_payloads: Active entries whose vault payload is absent
            (vault write failed during Store, or metadata lagging a Delete)
        leaked_payloads: Inactive entries whose vault payload is still
            readable (metadata deactivated without the vault removal)
    """

    unlinked_entries: list[str] = field(default_factory=list)
    dangling_links: list[str] = field(default_factory=list)
    missing_payloads: list[str] = field(default_factory=list)
    leaked_payloads: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (
            self.unlinked_entries
            or self.dangling_links
            or self.missing_payloads
            or self.leaked_payloads
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "unlinked_entries": list(self.unlinked_entries),
            "dangling_links": list(self.dangling_links),
            "missing_payloads": list(self.missing_payloads),
            "leaked_payloads": list(self.leaked_payloads),
        }


@dataclass
class User:
    """Card owner as seen by the user management endpoints."""

    user_id: int
    name: str
    email: str
    state: RecordState = RecordState.ACTIVE
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
