"""Consent database model."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindcare.models.db.base import Base, utcnow

if TYPE_CHECKING:
    from mindcare.models.db.chat import Chat


class ConsentStatus(enum.StrEnum):
    """Status of a consent record."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Consent(Base):
    """A patient's decision about sharing one chat with their therapist.

    One row per ``(chat_id, patient_id)``; the status is overwritten in
    place and both decided states may be revisited. ``responded_at`` is set
    exactly when the status is not PENDING.
    """

    __tablename__ = "consents"

    chat_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[ConsentStatus] = mapped_column(
        Enum(ConsentStatus, name="consent_status"),
        nullable=False,
        default=ConsentStatus.PENDING,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    chat: Mapped["Chat"] = relationship(
        back_populates="consents",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("chat_id", "patient_id", name="uq_consents_chat_patient"),
        CheckConstraint(
            "(status = 'PENDING') = (responded_at IS NULL)",
            name="ck_consents_responded_iff_decided",
        ),
    )
