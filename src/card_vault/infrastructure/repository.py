"""Repository layer for card metadata and user database operations.

This module provides the data access layer for the relational side of the
card vault: secret entry lifecycle rows, card-to-secret link rows and users.
Every public method opens its own session and commits before returning.
"""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import func

from card_vault.domain.card import RecordState, User
from card_vault.domain.exceptions import (
    MetadataReadFailed,
    MetadataWriteFailed,
    UserNotFound,
)
from card_vault.domain.ports import IMetadataStore
from card_vault.infrastructure.database import Database
from card_vault.infrastructure.models import CardLink, SecretEntry, UserModel

logger = structlog.get_logger(__name__)

ACTIVE = RecordState.ACTIVE.value
INACTIVE = RecordState.INACTIVE.value


class SqlMetadataStore(IMetadataStore):
    """Relational linkage between users and vault secret names.

    Multi-statement operations commit each statement separately, so a
    failure on the second statement leaves the first one in place. Those
    states are reported by the detection queries, never repaired here.
    """

    def __init__(self, database: Database):
        """Initialize store with a database.

        Args:
            database: Shared Database providing scoped sessions
        """
        self.database = database

    def links_for_user(self, user_id: int, state: RecordState) -> list[str]:
        """List secret names linked to a user.

        Args:
            user_id: Owning user
            state: Required state of both the card link and its secret entry

        Returns:
            Secret names ordered by card link insertion

        Raises:
            MetadataReadFailed: If the query fails
        """
        try:
            with self.database.session() as session:
                rows = (
                    session.query(SecretEntry.name)
                    .join(CardLink, CardLink.secret_entry_id == SecretEntry.id)
                    .filter(
                        CardLink.user_id == user_id,
                        CardLink.state == state.value,
                        SecretEntry.state == state.value,
                    )
                    .order_by(CardLink.id)
                    .all()
                )
        except SQLAlchemyError as e:
            logger.error("links_for_user_failed", user_id=user_id, error=str(e))
            raise MetadataReadFailed(f"Exception while listing card links for user {user_id}") from e

        names = [row.name for row in rows]
        logger.debug("links_for_user", user_id=user_id, state=state.value, count=len(names))
        return names

    def create_link(self, user_id: int, name: str) -> None:
        """Insert an Active secret entry, then an Active card link to it.

        Args:
            user_id: Owning user
            name: Newly allocated secret name

        Raises:
            MetadataWriteFailed: If either insert fails
        """
        try:
            with self.database.session() as session:
                entry = SecretEntry(name=name, state=ACTIVE)
                session.add(entry)
                session.flush()  # Assigns the generated id
                secret_entry_id = entry.id
        except SQLAlchemyError as e:
            logger.error("secret_entry_insert_failed", user_id=user_id, secret_name=name, error=str(e))
            raise MetadataWriteFailed("Exception occurred while creating secret entry record") from e

        try:
            with self.database.session() as session:
                session.add(
                    CardLink(user_id=user_id, secret_entry_id=secret_entry_id, state=ACTIVE)
                )
                session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "card_link_insert_failed",
                user_id=user_id,
                secret_name=name,
                secret_entry_id=secret_entry_id,
                error=str(e),
            )
            raise MetadataWriteFailed("Exception occurred while creating card link record") from e

        logger.info("card_link_created", user_id=user_id, secret_name=name, secret_entry_id=secret_entry_id)

    def deactivate_link(self, user_id: int, name: str) -> None:
        """Transition a secret entry, then its card link(s), to Inactive.

        Rows already Inactive are left untouched.

        Args:
            user_id: Owning user
            name: Secret name to deactivate

        Raises:
            MetadataWriteFailed: If the entry does not exist or a transition fails
        """
        try:
            with self.database.session() as session:
                entry = session.query(SecretEntry).filter(SecretEntry.name == name).first()
                if entry is None:
                    raise MetadataWriteFailed(f"Secret entry {name} does not exist")
                secret_entry_id = entry.id
                if entry.state == ACTIVE:
                    entry.state = INACTIVE
                    entry.modified_at = func.now()
        except SQLAlchemyError as e:
            logger.error("secret_entry_deactivate_failed", user_id=user_id, secret_name=name, error=str(e))
            raise MetadataWriteFailed("Exception occurred while updating secret entry record as inactive") from e

        try:
            with self.database.session() as session:
                updated = (
                    session.query(CardLink)
                    .filter(
                        CardLink.secret_entry_id == secret_entry_id,
                        CardLink.user_id == user_id,
                        CardLink.state == ACTIVE,
                    )
                    .update(
                        {CardLink.state: INACTIVE, CardLink.modified_at: func.now()},
                        synchronize_session=False,
                    )
                )
        except SQLAlchemyError as e:
            logger.error("card_link_deactivate_failed", user_id=user_id, secret_name=name, error=str(e))
            raise MetadataWriteFailed("Exception occurred while updating card link record as inactive") from e

        logger.info("card_link_deactivated", user_id=user_id, secret_name=name, links_updated=updated)

    def active_entries(self) -> list[str]:
        """Names of every Active card link whose secret entry is Active."""
        try:
            with self.database.session() as session:
                rows = (
                    session.query(SecretEntry.name)
                    .join(CardLink, CardLink.secret_entry_id == SecretEntry.id)
                    .filter(CardLink.state == ACTIVE, SecretEntry.state == ACTIVE)
                    .order_by(CardLink.id)
                    .all()
                )
        except SQLAlchemyError as e:
            raise MetadataReadFailed("Exception while listing active secret entries") from e
        return [row.name for row in rows]

    def unlinked_entries(self) -> list[str]:
        """Names of Active secret entries with no Active card link."""
        try:
            with self.database.session() as session:
                has_active_link = (
                    session.query(CardLink.id)
                    .filter(CardLink.secret_entry_id == SecretEntry.id, CardLink.state == ACTIVE)
                    .exists()
                )
                rows = (
                    session.query(SecretEntry.name)
                    .filter(SecretEntry.state == ACTIVE, ~has_active_link)
                    .order_by(SecretEntry.id)
                    .all()
                )
        except SQLAlchemyError as e:
            raise MetadataReadFailed("Exception while listing unlinked secret entries") from e
        return [row.name for row in rows]

    def dangling_links(self) -> list[str]:
        """Names behind Active card links whose secret entry is Inactive."""
        try:
            with self.database.session() as session:
                rows = (
                    session.query(SecretEntry.name)
                    .join(CardLink, CardLink.secret_entry_id == SecretEntry.id)
                    .filter(CardLink.state == ACTIVE, SecretEntry.state == INACTIVE)
                    .order_by(CardLink.id)
                    .all()
                )
        except SQLAlchemyError as e:
            raise MetadataReadFailed("Exception while listing dangling card links") from e
        return [row.name for row in rows]

    def inactive_entries(self) -> list[str]:
        """Names of every Inactive secret entry, in insertion order."""
        try:
            with self.database.session() as session:
                rows = (
                    session.query(SecretEntry.name)
                    .filter(SecretEntry.state == INACTIVE)
                    .order_by(SecretEntry.id)
                    .all()
                )
        except SQLAlchemyError as e:
            raise MetadataReadFailed("Exception while listing inactive secret entries") from e
        return [row.name for row in rows]


class UserRepository:
    """Repository for card owner records."""

    def __init__(self, database: Database):
        """Initialize repository with a database.

        Args:
            database: Shared Database providing scoped sessions
        """
        self.database = database

    def create(self, name: str, email: str) -> User:
        """Insert a new Active user.

        Raises:
            MetadataWriteFailed: If the insert fails
        """
        try:
            with self.database.session() as session:
                model = UserModel(name=name, email=email, state=ACTIVE)
                session.add(model)
                session.flush()
                session.refresh(model)  # Load server-side timestamps
                user = self._to_domain_entity(model)
        except SQLAlchemyError as e:
            logger.error("user_insert_failed", error=str(e))
            raise MetadataWriteFailed("Exception occurred while creating user record") from e

        logger.info("user_created", user_id=user.user_id)
        return user

    def get(self, user_id: int) -> User:
        """Retrieve an Active user.

        Raises:
            UserNotFound: If no Active user has this id
            MetadataReadFailed: If the query fails
        """
        try:
            with self.database.session() as session:
                model = self._get_active(session, user_id)
                user = self._to_domain_entity(model) if model else None
        except SQLAlchemyError as e:
            raise MetadataReadFailed("Exception occurred while retrieving user details") from e

        if user is None:
            raise UserNotFound(f"User {user_id} does not exist")
        return user

    def update(self, user_id: int, name: str, email: str) -> User:
        """Change an Active user's name and email.

        Raises:
            UserNotFound: If no Active user has this id
            MetadataWriteFailed: If the update fails
        """
        try:
            with self.database.session() as session:
                model = self._get_active(session, user_id)
                if model is None:
                    raise UserNotFound(f"User {user_id} does not exist")
                model.name = name
                model.email = email
                session.flush()
                session.refresh(model)
                user = self._to_domain_entity(model)
        except SQLAlchemyError as e:
            raise MetadataWriteFailed("Exception occurred while updating user record") from e

        logger.info("user_updated", user_id=user_id)
        return user

    def deactivate(self, user_id: int) -> None:
        """Soft-delete a user by moving it to Inactive.

        Card links are not touched; the user's cards are deleted through the
        card operations.

        Raises:
            UserNotFound: If no Active user has this id
            MetadataWriteFailed: If the update fails
        """
        try:
            with self.database.session() as session:
                model = self._get_active(session, user_id)
                if model is None:
                    raise UserNotFound(f"User {user_id} does not exist")
                model.state = INACTIVE
        except SQLAlchemyError as e:
            raise MetadataWriteFailed("Exception occurred while updating user record as inactive") from e

        logger.info("user_deactivated", user_id=user_id)

    @staticmethod
    def _get_active(session, user_id: int) -> Optional[UserModel]:
        return (
            session.query(UserModel)
            .filter(UserModel.id == user_id, UserModel.state == ACTIVE)
            .first()
        )

    @staticmethod
    def _to_domain_entity(model: UserModel) -> User:
        """Convert ORM model to domain entity."""
        return User(
            user_id=model.id,
            name=model.name,
            email=model.email,
            state=RecordState(model.state),
            created_at=model.created_at,
            modified_at=model.modified_at,
        )
