"""Therapist API endpoints.

Every chat-level route re-checks that the patient is assigned to the
caller and that the chat has an approved consent.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from mindcare.api.v1.dependencies import LLM, Therapist
from mindcare.core.database import DbSession
from mindcare.models.domain.analysis import (
    AnalysisCorrection,
    AnalysisCreate,
    AnalysisRead,
    GuidanceRead,
    GuidanceUpdate,
)
from mindcare.models.domain.chat import TherapistChatRead
from mindcare.models.domain.report import ReportCreate, ReportRead
from mindcare.models.domain.user import AssignedPatient
from mindcare.services.analysis_service import AnalysisService
from mindcare.services.guidance_service import GuidanceService
from mindcare.services.report_service import ReportService
from mindcare.services.therapist_service import TherapistService

router = APIRouter()


def get_therapist_service(session: DbSession) -> TherapistService:
    """Get therapist service instance."""
    return TherapistService(session)


def get_analysis_service(session: DbSession, llm_client: LLM) -> AnalysisService:
    """Get analysis service instance."""
    return AnalysisService(session, llm_client)


def get_guidance_service(session: DbSession) -> GuidanceService:
    """Get guidance service instance."""
    return GuidanceService(session)


def get_report_service(session: DbSession, llm_client: LLM) -> ReportService:
    """Get report service instance."""
    return ReportService(session, llm_client)


TherapistSvc = Annotated[TherapistService, Depends(get_therapist_service)]
AnalysisSvc = Annotated[AnalysisService, Depends(get_analysis_service)]
GuidanceSvc = Annotated[GuidanceService, Depends(get_guidance_service)]
ReportSvc = Annotated[ReportService, Depends(get_report_service)]


@router.get("/patients", response_model=list[AssignedPatient])
async def list_patients(
    therapist: Therapist,
    service: TherapistSvc,
) -> list[AssignedPatient]:
    """List your assigned patients with the chats they have shared."""
    return await service.list_assigned_patients(therapist.id)


@router.get("/patients/{patient_id}/chats", response_model=list[TherapistChatRead])
async def list_patient_chats(
    patient_id: uuid.UUID,
    therapist: Therapist,
    service: TherapistSvc,
) -> list[TherapistChatRead]:
    """List a patient's shared chats with your analysis of each."""
    return await service.list_patient_chats(patient_id, therapist.id)


@router.post("/analysis", response_model=AnalysisRead, status_code=status.HTTP_201_CREATED)
async def generate_analysis(
    request: AnalysisCreate,
    therapist: Therapist,
    service: AnalysisSvc,
) -> AnalysisRead:
    """Generate or refresh the AI analysis of a shared chat.

    Existing corrections are kept when the analysis is regenerated.
    """
    return await service.generate_analysis(request.chat_id, therapist.id)


@router.post("/analysis/correct", response_model=AnalysisRead)
async def correct_analysis(
    request: AnalysisCorrection,
    therapist: Therapist,
    service: AnalysisSvc,
) -> AnalysisRead:
    """Attach corrections to one of your analyses."""
    return await service.correct_analysis(
        request.analysis_id, therapist.id, request.corrections
    )


@router.get("/chats/{chat_id}/analysis", response_model=AnalysisRead)
async def get_analysis(
    chat_id: uuid.UUID,
    therapist: Therapist,
    service: AnalysisSvc,
) -> AnalysisRead:
    """Get your analysis of a shared chat."""
    return await service.get_analysis(chat_id, therapist.id)


@router.get("/chats/{chat_id}/guidance", response_model=GuidanceRead)
async def get_guidance(
    chat_id: uuid.UUID,
    therapist: Therapist,
    service: GuidanceSvc,
) -> GuidanceRead:
    """Get the guidance set on a shared chat."""
    return await service.get_guidance(chat_id, therapist.id)


@router.put("/chats/{chat_id}/guidance", response_model=GuidanceRead)
async def set_guidance(
    chat_id: uuid.UUID,
    request: GuidanceUpdate,
    therapist: Therapist,
    service: GuidanceSvc,
) -> GuidanceRead:
    """Set or clear the guidance used for the chat's next replies."""
    return await service.set_guidance(chat_id, therapist.id, request.guidance)


@router.post("/reports", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
async def generate_report(
    request: ReportCreate,
    therapist: Therapist,
    service: ReportSvc,
) -> ReportRead:
    """Compile a report about an assigned patient.

    Without an analysis_id, or if the analysis cannot be found, a short
    templated report is stored instead.
    """
    return await service.generate_report(
        patient_id=request.patient_id,
        therapist_id=therapist.id,
        title=request.title,
        analysis_id=request.analysis_id,
    )


@router.get("/reports", response_model=list[ReportRead])
async def list_reports(
    therapist: Therapist,
    service: ReportSvc,
    patient_id: Annotated[uuid.UUID | None, Query()] = None,
) -> list[ReportRead]:
    """List your reports, newest first."""
    return await service.list_reports(therapist.id, patient_id)
