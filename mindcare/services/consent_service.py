"""Service for the per-chat consent state machine."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import ConsentAlreadyApprovedError, NotFoundError
from mindcare.models.db.base import utcnow
from mindcare.models.db.consent import ConsentStatus
from mindcare.models.domain.consent import (
    ConsentChatSummary,
    ConsentRead,
    ConsentWithChat,
)
from mindcare.models.domain.consent import ConsentStatus as DomainConsentStatus
from mindcare.repositories.chat_repo import ChatRepository
from mindcare.repositories.consent_repo import ConsentRepository

logger = logging.getLogger(__name__)


class ConsentService:
    """Service for sharing chats with the assigned therapist.

    One record exists per (chat, patient). Any status may move to any other
    status; only a request against an APPROVED record is refused.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ConsentRepository(session)
        self.chat_repo = ChatRepository(session)

    async def _ensure_owned(self, chat_id: uuid.UUID, patient_id: uuid.UUID) -> None:
        chat = await self.chat_repo.get_for_patient(
            chat_id, patient_id, include_messages=False
        )
        if chat is None:
            raise NotFoundError(resource="Chat")

    async def request_consent(
        self,
        chat_id: uuid.UUID,
        patient_id: uuid.UUID,
    ) -> ConsentRead:
        """Ask to share a chat; repeated requests return the same record.

        Args:
            chat_id: The chat to share
            patient_id: The owning patient

        Returns:
            The new PENDING record, or the existing PENDING/REJECTED one
            unchanged

        Raises:
            NotFoundError: If the chat is not the patient's
            ConsentAlreadyApprovedError: If the chat is already shared
        """
        await self._ensure_owned(chat_id, patient_id)

        existing = await self.repo.get(chat_id, patient_id)
        if existing is not None:
            if existing.status == ConsentStatus.APPROVED:
                raise ConsentAlreadyApprovedError(
                    consent=ConsentRead.model_validate(existing).model_dump(mode="json")
                )
            return ConsentRead.model_validate(existing)

        await self.repo.create_pending(chat_id, patient_id)
        consent = await self.repo.get(chat_id, patient_id)
        if consent is None:
            raise NotFoundError(resource="Consent")
        logger.info(
            "Consent requested",
            extra={"chat_id": str(chat_id), "consent_id": str(consent.id)},
        )
        return ConsentRead.model_validate(consent)

    async def set_consent_status(
        self,
        chat_id: uuid.UUID,
        patient_id: uuid.UUID,
        status: DomainConsentStatus,
    ) -> ConsentRead:
        """Record the patient's decision for a chat.

        ``responded_at`` is stamped for APPROVED/REJECTED and cleared for
        PENDING. Takes effect for therapists on their next read.

        Raises:
            NotFoundError: If the chat is not the patient's
        """
        await self._ensure_owned(chat_id, patient_id)

        db_status = ConsentStatus(status.value)
        responded_at = None if db_status == ConsentStatus.PENDING else utcnow()
        consent = await self.repo.upsert_status(
            chat_id=chat_id,
            patient_id=patient_id,
            status=db_status,
            responded_at=responded_at,
        )
        logger.info(
            "Consent status changed",
            extra={"chat_id": str(chat_id), "status": db_status.value},
        )
        return ConsentRead.model_validate(consent)

    async def list_consents(self, patient_id: uuid.UUID) -> list[ConsentWithChat]:
        """All of the patient's consent records, newest request first."""
        rows = await self.repo.list_for_patient(patient_id)
        return [
            ConsentWithChat(
                **ConsentRead.model_validate(consent).model_dump(),
                chat=ConsentChatSummary(
                    id=chat.id,
                    title=chat.title,
                    message_count=message_count,
                ),
            )
            for consent, chat, message_count in rows
        ]
