"""Consent Pydantic schemas."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ConsentStatus(StrEnum):
    """Status of a consent record."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ConsentRequestCreate(BaseModel):
    """Ask to share a chat with the assigned therapist."""

    chat_id: UUID = Field(..., description="Chat to share")


class ConsentStatusUpdate(BaseModel):
    """Set the consent decision for a chat."""

    chat_id: UUID = Field(..., description="Chat the decision applies to")
    status: ConsentStatus = Field(..., description="New consent status")


class ConsentRead(BaseModel):
    """Schema for reading consent data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chat_id: UUID
    patient_id: UUID
    status: ConsentStatus
    requested_at: datetime
    responded_at: datetime | None = None


class ConsentChatSummary(BaseModel):
    """The chat a consent record refers to."""

    id: UUID
    title: str
    message_count: int


class ConsentWithChat(ConsentRead):
    """A consent record with a summary of its chat."""

    chat: ConsentChatSummary
