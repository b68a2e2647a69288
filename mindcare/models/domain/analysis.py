"""Schemas for AI analysis and therapist guidance."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Sentiment(StrEnum):
    """Overall emotional tone of a conversation."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    CONCERNING = "concerning"


class RiskLevel(StrEnum):
    """Assessed risk for the patient."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisResult(BaseModel):
    """Validated output of the analysis model call."""

    analysis: str
    predictions: str
    sentiment: Sentiment
    risk_level: RiskLevel


class AnalysisCreate(BaseModel):
    """Request a (re)generated analysis of a chat."""

    chat_id: UUID


class AnalysisCorrection(BaseModel):
    """A therapist's correction of an analysis."""

    analysis_id: UUID
    corrections: str = Field(..., min_length=1)


class AnalysisRead(BaseModel):
    """Schema for reading an analysis."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    chat_id: UUID
    therapist_id: UUID
    analysis: str
    predictions: str | None = None
    sentiment: Sentiment
    risk_level: RiskLevel
    therapist_corrections: str | None = None
    corrected_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class GuidanceUpdate(BaseModel):
    """New guidance text; null or blank clears it."""

    guidance: str | None = Field(..., max_length=4000)


class GuidanceRead(BaseModel):
    """Current guidance for a chat."""

    chat_id: UUID
    guidance: str | None = None
