"""Pydantic models for JSON API requests/responses.

Request fields are optional at the schema level so that missing values reach
the domain validators and come back as 400 responses with a descriptive
message, the same as blank values.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from card_vault.domain.card import CardPayload, User


class StoreCardRequest(BaseModel):
    """JSON request model for storing a card."""

    user_id: Optional[int] = Field(None, description="Owning user ID")
    card_number: Optional[str] = Field(None, description="Card number")
    expiry_date: Optional[str] = Field(None, description="Expiry date (MM/YY)")

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": 42,
                "card_number": "4111111111111112",
                "expiry_date": "12/30",
            }
        }
    }


class StoreCardResponse(BaseModel):
    """JSON response model for a stored card."""

    secret_name: str = Field(..., description="Vault entry created for the card")
    message: str = Field("Card details stored successfully")


class UpdateCardRequest(BaseModel):
    """JSON request model for updating a card.

    ``card_number`` selects the card; ``new_card_number`` replaces the number
    when given, ``expiry_date`` always replaces the expiry.
    """

    user_id: Optional[int] = Field(None, description="Owning user ID")
    card_number: Optional[str] = Field(None, description="Number of the card to update")
    expiry_date: Optional[str] = Field(None, description="New expiry date (MM/YY)")
    new_card_number: Optional[str] = Field(None, description="Replacement card number")

    def to_payload(self) -> CardPayload:
        return CardPayload(
            card_number=self.new_card_number or self.card_number,
            expiry_date=self.expiry_date,
        )


class UpdateCardResponse(BaseModel):
    updated: bool
    message: str


class DeleteCardRequest(BaseModel):
    """JSON request model for deleting a card."""

    user_id: Optional[int] = Field(None, description="Owning user ID")
    card_number: Optional[str] = Field(None, description="Number of the card to delete")


class DeleteCardResponse(BaseModel):
    deleted: bool
    message: str


class CardDetails(BaseModel):
    card_number: str
    expiry_date: str

    @classmethod
    def from_payload(cls, payload: CardPayload) -> "CardDetails":
        return cls(card_number=payload.card_number, expiry_date=payload.expiry_date)


class CardListResponse(BaseModel):
    """JSON response model for a user's cards."""

    user_id: int
    cards: list[CardDetails] = Field(default_factory=list)


class ValidateCardRequest(BaseModel):
    card_number: Optional[str] = None
    expiry_date: Optional[str] = None


class ValidateCardResponse(BaseModel):
    valid: bool
    message: str


class UserRequest(BaseModel):
    """JSON request model for creating or updating a user."""

    name: Optional[str] = Field(None, description="User name")
    email: Optional[str] = Field(None, description="Email address")


class UserResponse(BaseModel):
    user_id: int
    name: str
    email: str
    state: str
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            state=user.state.value,
            created_at=user.created_at,
            modified_at=user.modified_at,
        )


class OrphanReportResponse(BaseModel):
    unlinked_entries: list[str]
    dangling_links: list[str]
    missing_payloads: list[str]
    leaked_payloads: list[str]
    clean: bool
