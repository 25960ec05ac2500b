"""SQLAlchemy ORM models for Card Vault Service.

No table here ever holds a card number. Rows are never physically deleted;
lifecycle is tracked through the ``state`` column (Active -> Inactive).
"""

from datetime import datetime

from sqlalchemy import (
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from card_vault.domain.card import RecordState
from card_vault.infrastructure.database import Base

STATE_CHECK = "state IN ('Active', 'Inactive')"


class UserModel(Base):
    """Card owner record."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="User ID"
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="User name")

    email: Mapped[str] = mapped_column(String(320), nullable=False, comment="Email address")

    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RecordState.ACTIVE.value, comment="Active or Inactive"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Creation timestamp",
    )

    modified_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last modification timestamp",
    )

    __table_args__ = (CheckConstraint(STATE_CHECK, name="ck_users_state"),)


class SecretEntry(Base):
    """
    Lifecycle record for one vault payload.

    One row exists for every vault secret ever created. The name is the vault
    key; it is immutable and unique across the vault namespace.
    """

    __tablename__ = "secret_entries"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="Secret entry ID"
    )

    name: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, comment="Vault secret name"
    )

    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RecordState.ACTIVE.value, comment="Active or Inactive"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Creation timestamp",
    )

    modified_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last state transition timestamp",
    )

    __table_args__ = (
        CheckConstraint(STATE_CHECK, name="ck_secret_entries_state"),
        Index("idx_secret_entries_state", "state"),
    )


class CardLink(Base):
    """Ownership of a vault-held card by a user."""

    __tablename__ = "card_links"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, comment="Card link ID"
    )

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, comment="Owning user"
    )

    secret_entry_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("secret_entries.id"), nullable=False, comment="Vault payload entry"
    )

    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RecordState.ACTIVE.value, comment="Active or Inactive"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Creation timestamp",
    )

    modified_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last state transition timestamp",
    )

    __table_args__ = (
        CheckConstraint(STATE_CHECK, name="ck_card_links_state"),
        Index("idx_card_links_user_state", "user_id", "state"),
        Index("idx_card_links_secret_entry", "secret_entry_id"),
    )
