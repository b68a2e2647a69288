"""Identity schemas and the authenticated principal."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserRole(StrEnum):
    """User role enumeration."""

    PATIENT = "patient"
    THERAPIST = "therapist"


@dataclass(frozen=True)
class PatientPrincipal:
    """An authenticated patient."""

    id: UUID
    name: str


@dataclass(frozen=True)
class TherapistPrincipal:
    """An authenticated therapist."""

    id: UUID
    name: str


Principal = PatientPrincipal | TherapistPrincipal


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    role: UserRole


class UserRead(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    role: UserRole


class LoginResponse(BaseModel):
    """Result of a successful login."""

    user: UserRead
    access_token: str
    token_type: str = "bearer"


class ApprovedChatSummary(BaseModel):
    """A chat the therapist may currently open."""

    id: UUID
    title: str
    message_count: int
    updated_at: datetime


class AssignedPatient(BaseModel):
    """A patient assigned to the calling therapist."""

    id: UUID
    name: str
    email: str
    created_at: datetime
    chat_count: int
    approved_chats: list[ApprovedChatSummary] = Field(default_factory=list)
