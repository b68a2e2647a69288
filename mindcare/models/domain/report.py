"""Report Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReportCreate(BaseModel):
    """Request to compile a report for a patient."""

    patient_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    analysis_id: UUID | None = None


class ReportPatient(BaseModel):
    """The patient a report is about."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str


class ReportRead(BaseModel):
    """Schema for reading a report."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    therapist_id: UUID
    patient_id: UUID
    title: str
    content: str
    created_at: datetime
    patient: ReportPatient | None = None

