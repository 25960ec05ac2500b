"""FastAPI routes for card owners (users)."""

import structlog
from fastapi import APIRouter, HTTPException, status

from card_vault.api.dependencies import UserRepo
from card_vault.api.models import UserRequest, UserResponse
from card_vault.domain.exceptions import CardVaultError, UserNotFound, ValidationFailed
from card_vault.domain.validation import (
    USER_NAME,
    require_email,
    require_field,
    require_user_id,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users")


def _validate_user_request(request: UserRequest) -> None:
    try:
        require_field(request.name, USER_NAME)
        require_email(request.email)
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _validate_user_id(user_id: int) -> None:
    try:
        require_user_id(user_id)
    except ValidationFailed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _server_error(event: str, detail: str) -> HTTPException:
    logger.exception(event)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
def create_user(request: UserRequest, users: UserRepo) -> UserResponse:
    """Create a user."""
    _validate_user_request(request)

    try:
        user = users.create(request.name, request.email)
    except CardVaultError:
        raise _server_error("create_user_failed", "Failed to create user")

    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, users: UserRepo) -> UserResponse:
    """Retrieve an Active user."""
    _validate_user_id(user_id)

    try:
        user = users.get(user_id)
    except UserNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except CardVaultError:
        raise _server_error("get_user_failed", "Failed to get user details")

    return UserResponse.from_user(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, request: UserRequest, users: UserRepo) -> UserResponse:
    """Change a user's name and email."""
    _validate_user_id(user_id)
    _validate_user_request(request)

    try:
        user = users.update(user_id, request.name, request.email)
    except UserNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except CardVaultError:
        raise _server_error("update_user_failed", "Failed to update user details")

    return UserResponse.from_user(user)


@router.delete("/{user_id}")
def delete_user(user_id: int, users: UserRepo) -> dict[str, str]:
    """Deactivate a user."""
    _validate_user_id(user_id)

    try:
        users.deactivate(user_id)
    except UserNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except CardVaultError:
        raise _server_error("delete_user_failed", "Failed to delete user")

    return {"message": "User deleted successfully"}
