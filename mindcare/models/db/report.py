"""Report database model."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindcare.models.db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from mindcare.models.db.user import User


class Report(Base, CreatedAtMixin):
    """A persisted report written for a therapist about one patient.

    Reports are never modified after creation and stay readable even when
    the consents they were built from are later withdrawn.
    """

    __tablename__ = "reports"

    therapist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Relationships
    patient: Mapped["User"] = relationship(
        foreign_keys=[patient_id],
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_reports_therapist_created", "therapist_id", "created_at"),
    )
