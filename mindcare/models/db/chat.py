"""Chat and message database models."""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindcare.models.db.base import Base, CreatedAtMixin, TimestampMixin

if TYPE_CHECKING:
    from mindcare.models.db.analysis import AIAnalysis
    from mindcare.models.db.consent import Consent
    from mindcare.models.db.user import User


class MessageRole(enum.StrEnum):
    """Role of the message sender."""

    USER = "user"
    ASSISTANT = "assistant"


class Chat(Base, TimestampMixin):
    """A conversation between a patient and the AI assistant.

    Owned by exactly one patient. ``therapist_guidance`` is written by the
    assigned therapist and read on every subsequent generation call.
    """

    __tablename__ = "chats"

    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    therapist_guidance: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    patient: Mapped["User"] = relationship(
        back_populates="chats",
        lazy="raise",
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (Message.created_at, Message.sequence_number),
        lazy="raise",
    )
    consents: Mapped[list["Consent"]] = relationship(
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
    analyses: Mapped[list["AIAnalysis"]] = relationship(
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_chats_patient_updated", "patient_id", "updated_at"),
    )


class Message(Base, CreatedAtMixin):
    """A single immutable entry in a chat's append-only ledger."""

    __tablename__ = "messages"

    chat_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[MessageRole] = mapped_column(
        Enum(MessageRole, name="message_role"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    sequence_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    chat: Mapped["Chat"] = relationship(
        back_populates="messages",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_messages_chat_created", "chat_id", "created_at"),
    )
