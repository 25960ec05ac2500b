"""FastAPI routes for card operations.

This module implements the REST API endpoints for cards:
- POST /api/cards: Store a card
- PUT /api/cards: Update a card's payload
- DELETE /api/cards: Delete a card
- GET /api/users/{user_id}/cards: List a user's cards
- POST /api/cards/validate: Run card rule checks

Handlers are plain functions so FastAPI runs each request on its threadpool;
vault round trips never block the event loop.

Status mapping: invalid input is 400 with a descriptive message. A card that
cannot be found on update/delete is not a client error and returns 200 with
``updated``/``deleted`` false. Infrastructure failures are 500 with a generic
message that never exposes vault or database details.
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from card_vault.api.dependencies import Coordinator
from card_vault.api.models import (
    CardDetails,
    CardListResponse,
    DeleteCardRequest,
    DeleteCardResponse,
    StoreCardRequest,
    StoreCardResponse,
    UpdateCardRequest,
    UpdateCardResponse,
    ValidateCardRequest,
    ValidateCardResponse,
)
from card_vault.domain.exceptions import CardVaultError, ValidationFailed
from card_vault.domain.validation import validate_card

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api")


@router.post(
    "/cards",
    status_code=status.HTTP_201_CREATED,
    response_model=StoreCardResponse,
)
def store_card(request: StoreCardRequest, coordinator: Coordinator) -> StoreCardResponse:
    """Store a card for a user.

    Responses:
        201 Created: Card stored
        400 Bad Request: Missing user id, card number or expiry date
        500 Internal Server Error: Metadata or vault failure
    """
    try:
        secret_name = coordinator.store(request.user_id, request.card_number, request.expiry_date)
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CardVaultError:
        logger.exception("store_card_failed", user_id=request.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store card details",
        )

    return StoreCardResponse(secret_name=secret_name)


@router.put("/cards", response_model=UpdateCardResponse)
def update_card(request: UpdateCardRequest, coordinator: Coordinator) -> UpdateCardResponse:
    """Update the payload of the user's card matching ``card_number``.

    Responses:
        200 OK: ``updated`` tells whether a matching card was found
        400 Bad Request: Missing field
        500 Internal Server Error: Metadata or vault failure
    """
    try:
        updated = coordinator.update(request.user_id, request.card_number, request.to_payload())
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CardVaultError:
        logger.exception("update_card_failed", user_id=request.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update card details",
        )

    message = "Card details updated successfully" if updated else "No matching card found"
    return UpdateCardResponse(updated=updated, message=message)


@router.delete("/cards", response_model=DeleteCardResponse)
def delete_card(request: DeleteCardRequest, coordinator: Coordinator) -> DeleteCardResponse:
    """Delete the user's card matching ``card_number``.

    Responses:
        200 OK: ``deleted`` tells whether a matching card was found
        400 Bad Request: Missing field
        500 Internal Server Error: Metadata or vault failure
    """
    try:
        deleted = coordinator.delete(request.user_id, request.card_number)
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CardVaultError:
        logger.exception("delete_card_failed", user_id=request.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete card details",
        )

    message = "Card deleted successfully" if deleted else "No matching card found"
    return DeleteCardResponse(deleted=deleted, message=message)


@router.get("/users/{user_id}/cards", response_model=CardListResponse)
def list_cards(user_id: int, coordinator: Coordinator) -> CardListResponse:
    """List every Active card of a user.

    Responses:
        200 OK: All cards (never a partial list)
        400 Bad Request: Invalid user id
        500 Internal Server Error: Any card could not be read
    """
    try:
        cards = coordinator.fetch_all(user_id)
    except ValidationFailed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please input the user Id for which you would like to retrieve the Credit cards information",
        )
    except CardVaultError:
        logger.exception("list_cards_failed", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get the Card details",
        )

    return CardListResponse(
        user_id=user_id,
        cards=[CardDetails.from_payload(card) for card in cards],
    )


@router.post("/cards/validate", response_model=ValidateCardResponse)
def validate_card_details(request: ValidateCardRequest) -> ValidateCardResponse:
    """Check brand, length, expiry, blacklist and Luhn checksum.

    Responses:
        200 OK: Card passes every rule
        400 Bad Request: First failing rule, or malformed input
    """
    try:
        result = validate_card(request.card_number, request.expiry_date)
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not result.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)

    return ValidateCardResponse(valid=True, message=result.message)
