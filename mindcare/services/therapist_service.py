"""Service for a therapist's view of their assigned patients."""

import uuid
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import NotFoundError
from mindcare.models.db.analysis import AIAnalysis
from mindcare.models.db.chat import Chat
from mindcare.models.domain.analysis import AnalysisRead
from mindcare.models.domain.chat import TherapistChatRead
from mindcare.models.domain.user import ApprovedChatSummary, AssignedPatient
from mindcare.repositories.analysis_repo import AnalysisRepository
from mindcare.repositories.chat_repo import ChatRepository
from mindcare.repositories.user_repo import UserRepository
from mindcare.services.chat_service import to_chat_read


class TherapistService:
    """Read paths that are scoped by assignment and consent."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.user_repo = UserRepository(session)
        self.chat_repo = ChatRepository(session)
        self.analysis_repo = AnalysisRepository(session)

    async def list_assigned_patients(
        self,
        therapist_id: uuid.UUID,
    ) -> list[AssignedPatient]:
        """Patients currently assigned to the therapist, newest first.

        Each patient carries the total number of chats and the summaries of
        only those chats that have an APPROVED consent.
        """
        patients = await self.user_repo.list_assigned_patients(therapist_id)
        rows = await self.chat_repo.summarize_for_patients([p.id for p in patients])

        chat_counts: dict[uuid.UUID, int] = defaultdict(int)
        approved: dict[uuid.UUID, list[ApprovedChatSummary]] = defaultdict(list)
        for chat, message_count, is_approved in rows:
            chat_counts[chat.patient_id] += 1
            if is_approved:
                approved[chat.patient_id].append(
                    ApprovedChatSummary(
                        id=chat.id,
                        title=chat.title,
                        message_count=message_count,
                        updated_at=chat.updated_at,
                    )
                )

        return [
            AssignedPatient(
                id=patient.id,
                name=patient.name,
                email=patient.email,
                created_at=patient.created_at,
                chat_count=chat_counts[patient.id],
                approved_chats=approved[patient.id],
            )
            for patient in patients
        ]

    async def list_patient_chats(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> list[TherapistChatRead]:
        """A patient's shared chats with the therapist's analysis of each.

        Raises:
            NotFoundError: If the patient is not assigned to the therapist
        """
        patient = await self.user_repo.get_assigned_patient(patient_id, therapist_id)
        if patient is None:
            raise NotFoundError(resource="Patient")

        chats = await self.chat_repo.list_visible_for_patient(patient_id, therapist_id)
        analyses = await self.analysis_repo.get_for_chats(
            [chat.id for chat in chats], therapist_id
        )
        return [self._to_therapist_chat(chat, analyses.get(chat.id)) for chat in chats]

    @staticmethod
    def _to_therapist_chat(chat: Chat, analysis: AIAnalysis | None) -> TherapistChatRead:
        return TherapistChatRead(
            **to_chat_read(chat).model_dump(),
            latest_analysis=(
                AnalysisRead.model_validate(analysis) if analysis is not None else None
            ),
        )
