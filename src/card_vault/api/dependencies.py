"""FastAPI dependencies for dependency injection.

Every dependency reads from the ``ServiceContainer`` built once at startup
and stored on ``app.state``. Tests override ``get_container``.
"""

from typing import Annotated

from fastapi import Depends, Request

from card_vault.bootstrap import ServiceContainer
from card_vault.domain.coordinator import CardVaultCoordinator
from card_vault.infrastructure.repository import UserRepository


def get_container(request: Request) -> ServiceContainer:
    """Provide the process-wide service container."""
    return request.app.state.container


Container = Annotated[ServiceContainer, Depends(get_container)]


def get_coordinator(container: Container) -> CardVaultCoordinator:
    """Provide the card coordinator."""
    return container.coordinator


Coordinator = Annotated[CardVaultCoordinator, Depends(get_coordinator)]


def get_user_repository(container: Container) -> UserRepository:
    """Provide the user repository."""
    return container.users


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
