"""Pydantic schemas for the chat ledger."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from mindcare.models.domain.analysis import AnalysisRead
from mindcare.models.domain.consent import ConsentRead


class MessageRead(BaseModel):
    """A message in a chat."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: str
    content: str
    created_at: datetime


class ChatRead(BaseModel):
    """A chat with its full, ascending message history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int
    messages: list[MessageRead]


class ChatDetail(ChatRead):
    """A patient's own chat together with its consent records."""

    consents: list[ConsentRead] = Field(default_factory=list)


class SendMessageRequest(BaseModel):
    """Request schema for posting a message."""

    message: str = Field(..., min_length=1, max_length=4000)
    chat_id: UUID | None = Field(
        None, description="Existing chat, or None to start a new one"
    )


class SendMessageResponse(BaseModel):
    """Response schema for posting a message."""

    chat_id: UUID
    response: str
    chat: ChatRead


class RateLimitStatus(BaseModel):
    """Remaining chat quota for the caller."""

    remaining: int
    max_per_hour: int


class TherapistChatRead(ChatRead):
    """A consented chat as seen by the assigned therapist."""

    latest_analysis: AnalysisRead | None = None
