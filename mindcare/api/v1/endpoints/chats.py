"""Chat API endpoints for patients."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status

from mindcare.api.v1.dependencies import LLM, Patient
from mindcare.core.database import DbSession
from mindcare.core.exceptions import RateLimitError
from mindcare.models.domain.chat import (
    ChatDetail,
    ChatRead,
    RateLimitStatus,
    SendMessageRequest,
    SendMessageResponse,
)
from mindcare.services.chat_service import ChatService
from mindcare.services.rate_limiter import ChatRateLimiter, RateLimitExceeded

router = APIRouter()


def get_chat_service(session: DbSession, llm_client: LLM) -> ChatService:
    """Get chat service instance."""
    return ChatService(session, llm_client)


def get_chat_rate_limiter() -> ChatRateLimiter:
    """Get chat rate limiter instance."""
    return ChatRateLimiter()


ChatSvc = Annotated[ChatService, Depends(get_chat_service)]
RateLimiterDep = Annotated[ChatRateLimiter, Depends(get_chat_rate_limiter)]


async def _send(
    patient: Patient,
    service: ChatService,
    rate_limiter: ChatRateLimiter,
    message: str,
    chat_id: uuid.UUID | None,
) -> SendMessageResponse:
    try:
        await rate_limiter.check_and_consume(patient.id)
    except RateLimitExceeded as e:
        raise RateLimitError(detail=str(e), retry_after=e.reset_time) from e

    chat, reply = await service.post_message(
        patient_id=patient.id,
        text=message,
        chat_id=chat_id,
    )
    return SendMessageResponse(chat_id=chat.id, response=reply, chat=chat)


@router.get("", response_model=list[ChatRead])
async def list_chats(patient: Patient, service: ChatSvc) -> list[ChatRead]:
    """List your chats, most recently active first."""
    return await service.list_chats(patient.id)


@router.post("", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    patient: Patient,
    service: ChatSvc,
    rate_limiter: RateLimiterDep,
) -> SendMessageResponse:
    """Send a message, starting a new chat when no chat_id is given.

    A new chat is titled after the first 50 characters of the message.
    If the reply cannot be generated the request fails with 500 but your
    message is kept; refetch the chat instead of resending.
    """
    return await _send(patient, service, rate_limiter, request.message, request.chat_id)


@router.get("/rate-limit", response_model=RateLimitStatus)
async def get_rate_limit(
    patient: Patient,
    rate_limiter: RateLimiterDep,
) -> RateLimitStatus:
    """Report how many messages you can still send this hour."""
    return RateLimitStatus(
        remaining=await rate_limiter.get_remaining(patient.id),
        max_per_hour=rate_limiter.max_requests,
    )


@router.get("/{chat_id}", response_model=ChatDetail)
async def get_chat(chat_id: uuid.UUID, patient: Patient, service: ChatSvc) -> ChatDetail:
    """Get one of your chats with its messages and consent records."""
    return await service.get_chat(chat_id, patient.id)


@router.post("/{chat_id}/messages", response_model=SendMessageResponse)
async def send_chat_message(
    chat_id: uuid.UUID,
    request: SendMessageRequest,
    patient: Patient,
    service: ChatSvc,
    rate_limiter: RateLimiterDep,
) -> SendMessageResponse:
    """Send a message to an existing chat."""
    return await _send(patient, service, rate_limiter, request.message, chat_id)


@router.delete("/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(chat_id: uuid.UUID, patient: Patient, service: ChatSvc) -> None:
    """Delete one of your chats along with its consents and analyses."""
    await service.delete_chat(chat_id, patient.id)
