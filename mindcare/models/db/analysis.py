"""AI analysis database model."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindcare.models.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from mindcare.models.db.chat import Chat


class Sentiment(enum.StrEnum):
    """Overall emotional tone of a conversation."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    CONCERNING = "concerning"


class RiskLevel(enum.StrEnum):
    """Assessed risk for the patient."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AIAnalysis(Base, TimestampMixin):
    """One therapist's AI-derived assessment of one chat.

    Regenerating replaces the model output columns in place; the
    therapist's correction overlay is only touched by the correction action.
    """

    __tablename__ = "ai_analyses"

    chat_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )
    therapist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    analysis: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    predictions: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    sentiment: Mapped[Sentiment] = mapped_column(
        Enum(Sentiment, name="sentiment"),
        nullable=False,
    )
    risk_level: Mapped[RiskLevel] = mapped_column(
        Enum(RiskLevel, name="risk_level"),
        nullable=False,
    )
    therapist_corrections: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    corrected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    chat: Mapped["Chat"] = relationship(
        back_populates="analyses",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("chat_id", "therapist_id", name="uq_ai_analyses_chat_therapist"),
    )
