"""Input validation for card and user requests.

Two levels of checks live here:

- Presence checks (``require_*``) guard every core operation. They raise
  ``ValidationFailed`` before any relational or vault call is made.
- Card rule checks (``validate_card``) back the card validation endpoint:
  brand, length per brand, expiry, blacklist and Luhn checksum.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from card_vault.domain.exceptions import ValidationFailed

USER_ID = "User Id"
CARD_NUMBER = "Card Number"
EXPIRY_DATE = "Expiry Date"
USER_NAME = "User Name"
EMAIL = "Email Address"

# Well-known test numbers rejected by the card validation endpoint
BLACKLISTED_CARDS = frozenset({"4111111111111111", "5500000000000004"})

_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[012])/(\d{2})$")
_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+$")
_MASTERCARD_2_SERIES = re.compile(r"^2(2[2-9]|[3-6][0-9]|7[01]|720)")
_MASTERCARD_PATTERN = re.compile(r"^(5[1-5]|2(2[2-9]|[3-6][0-9]|7[01]|720))")


@dataclass(frozen=True)
class ValidationStatus:
    """Outcome of the card rule checks."""

    valid: bool
    message: str


def require_user_id(user_id: Optional[int]) -> int:
    """Reject a missing or zero user id.

    Raises:
        ValidationFailed: If user_id is None or 0
    """
    if not user_id:
        raise ValidationFailed(f"Provide correct {USER_ID} details")
    return user_id


def require_field(value: Optional[str], field_name: str) -> str:
    """Reject a missing or blank string field.

    Args:
        value: Field value from the request
        field_name: Human-readable field label used in the message

    Raises:
        ValidationFailed: If value is None or whitespace only
    """
    if value is None or not value.strip():
        raise ValidationFailed(f"{field_name} is required")
    return value


def require_email(value: Optional[str]) -> str:
    """Reject a missing or malformed email address."""
    require_field(value, EMAIL)
    if not _EMAIL_PATTERN.match(value):
        raise ValidationFailed("Invalid Email Format")
    return value


def normalize_card_number(card_number: str) -> str:
    """Strip all whitespace from a card number."""
    return re.sub(r"\s", "", card_number)


def is_visa_or_mastercard(card_number: str) -> bool:
    if card_number.startswith("4"):
        return True
    if card_number.startswith(("51", "52", "53", "54", "55")):
        return True
    return bool(_MASTERCARD_2_SERIES.match(card_number))


def is_valid_card_length(card_number: str) -> bool:
    """Visa numbers are 13, 16 or 19 digits; Mastercard numbers are 16."""
    if card_number.startswith("4"):
        return len(card_number) in (13, 16, 19)
    if _MASTERCARD_PATTERN.match(card_number):
        return len(card_number) == 16
    return False


def is_expiry_valid(expiry_date: str, now: Optional[datetime] = None) -> bool:
    """Check that an MM/YY expiry has not passed.

    A card stays valid through the last day of its expiry month.

    Raises:
        ValidationFailed: If expiry_date is not in MM/YY format
    """
    match = _EXPIRY_PATTERN.match(expiry_date)
    if not match:
        raise ValidationFailed(
            "Expiry Date is in a wrong format, please provide the details in MM/YY format"
        )

    month = int(match.group(1))
    year = 2000 + int(match.group(2))
    now = now or datetime.now(timezone.utc)
    return (year, month) >= (now.year, now.month)


def is_blacklisted(card_number: str) -> bool:
    return card_number in BLACKLISTED_CARDS


def passes_luhn(card_number: str) -> bool:
    """Luhn mod-10 checksum over a digits-only card number."""
    if not card_number.isdigit():
        return False

    total = 0
    for index, char in enumerate(reversed(card_number)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card(
    card_number: Optional[str],
    expiry_date: Optional[str],
    now: Optional[datetime] = None,
) -> ValidationStatus:
    """Run the card rule checks in order and report the first failure.

    Args:
        card_number: Card number, whitespace allowed
        expiry_date: Expiry in MM/YY format
        now: Reference time for the expiry check (defaults to current UTC time)

    Returns:
        ValidationStatus describing the first failed rule, or success

    Raises:
        ValidationFailed: If a field is missing or the expiry is malformed
    """
    require_field(card_number, CARD_NUMBER)
    require_field(expiry_date, EXPIRY_DATE)

    card_number = normalize_card_number(card_number)

    if not is_visa_or_mastercard(card_number):
        return ValidationStatus(False, "Invalid credit card, Only Visa and Mastercard are supported")

    if not is_valid_card_length(card_number):
        return ValidationStatus(False, "Invalid card number length for Visa and MasterCard")

    if not is_expiry_valid(expiry_date.strip(), now=now):
        return ValidationStatus(False, "Card is expired")

    if is_blacklisted(card_number):
        return ValidationStatus(False, "Card is blacklisted")

    if not passes_luhn(card_number):
        return ValidationStatus(False, "Invalid card number (Luhn check failed)")

    return ValidationStatus(True, "Card validated successfully")
