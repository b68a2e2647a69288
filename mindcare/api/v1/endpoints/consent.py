"""Consent API endpoints for patients."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from mindcare.api.v1.dependencies import Patient
from mindcare.core.database import DbSession
from mindcare.models.domain.consent import (
    ConsentRead,
    ConsentRequestCreate,
    ConsentStatusUpdate,
    ConsentWithChat,
)
from mindcare.services.consent_service import ConsentService

router = APIRouter()


def get_consent_service(session: DbSession) -> ConsentService:
    """Get consent service instance."""
    return ConsentService(session)


ConsentSvc = Annotated[ConsentService, Depends(get_consent_service)]


@router.get("", response_model=list[ConsentWithChat])
async def list_consents(patient: Patient, service: ConsentSvc) -> list[ConsentWithChat]:
    """List your consent records, newest request first."""
    return await service.list_consents(patient.id)


@router.post("/request", response_model=ConsentRead, status_code=status.HTTP_201_CREATED)
async def request_consent(
    request: ConsentRequestCreate,
    patient: Patient,
    service: ConsentSvc,
) -> ConsentRead:
    """Ask to share a chat with your therapist.

    Repeating the request returns the existing record. Returns 400 if the
    chat is already shared.
    """
    return await service.request_consent(request.chat_id, patient.id)


@router.put("", response_model=ConsentRead)
async def set_consent_status(
    update: ConsentStatusUpdate,
    patient: Patient,
    service: ConsentSvc,
) -> ConsentRead:
    """Approve, reject, or reset the consent for one of your chats."""
    return await service.set_consent_status(update.chat_id, patient.id, update.status)
