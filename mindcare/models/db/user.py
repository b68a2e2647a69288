"""User database model."""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindcare.models.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from mindcare.models.db.chat import Chat


class UserRole(enum.StrEnum):
    """User role enumeration."""

    PATIENT = "patient"
    THERAPIST = "therapist"


class User(Base, TimestampMixin):
    """A patient or a therapist.

    ``therapist_id`` is the assignment: it is only ever set on patients and
    points at the therapist currently responsible for them.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    therapist_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    therapist: Mapped["User | None"] = relationship(
        remote_side="User.id",
        foreign_keys=[therapist_id],
        lazy="raise",
    )
    chats: Mapped[list["Chat"]] = relationship(
        back_populates="patient",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint(
            "role = 'PATIENT' OR therapist_id IS NULL",
            name="ck_users_only_patients_assigned",
        ),
        Index("ix_users_name_role", "name", "role"),
    )
