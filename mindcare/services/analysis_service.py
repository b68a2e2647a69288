"""Service for AI analyses of shared chats."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import NotFoundError
from mindcare.models.db.analysis import RiskLevel, Sentiment
from mindcare.models.db.base import utcnow
from mindcare.models.domain.analysis import AnalysisRead
from mindcare.repositories.analysis_repo import AnalysisRepository
from mindcare.repositories.chat_repo import ChatRepository
from mindcare.services.chat_service import to_history
from mindcare.services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class AnalysisService:
    """Service for generating, reading and correcting analyses.

    An analysis belongs to one (chat, therapist) pair. Generating again
    refreshes the model output but keeps the therapist's correction.
    """

    def __init__(self, session: AsyncSession, llm_client: LLMClient) -> None:
        self.session = session
        self.llm_client = llm_client
        self.repo = AnalysisRepository(session)
        self.chat_repo = ChatRepository(session)

    async def generate_analysis(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> AnalysisRead:
        """Analyze a shared chat and store the result.

        Model failures never fail the request; the stored analysis then holds
        the default text with neutral sentiment and low risk.

        Args:
            chat_id: The chat to analyze
            therapist_id: The requesting therapist

        Returns:
            The stored analysis

        Raises:
            NotFoundError: If the chat is missing, not shared, or its patient
                is not assigned to the therapist
        """
        chat = await self.chat_repo.get_visible_to_therapist(
            chat_id, therapist_id, include_messages=True
        )
        if chat is None:
            raise NotFoundError(resource="Chat")

        result = await self.llm_client.analyze(to_history(chat.messages))
        analysis = await self.repo.upsert(
            chat_id=chat.id,
            therapist_id=therapist_id,
            analysis=result.analysis,
            predictions=result.predictions,
            sentiment=Sentiment(result.sentiment.value),
            risk_level=RiskLevel(result.risk_level.value),
        )
        logger.info(
            "Analysis stored",
            extra={
                "analysis_id": str(analysis.id),
                "chat_id": str(chat_id),
                "risk_level": analysis.risk_level.value,
            },
        )
        return AnalysisRead.model_validate(analysis)

    async def get_analysis(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> AnalysisRead:
        """The therapist's analysis of a chat they may still read.

        Raises:
            NotFoundError: If the chat is no longer visible or was never
                analyzed by this therapist
        """
        chat = await self.chat_repo.get_visible_to_therapist(chat_id, therapist_id)
        if chat is None:
            raise NotFoundError(resource="Chat")
        analysis = await self.repo.get_for_chat(chat_id, therapist_id)
        if analysis is None:
            raise NotFoundError(resource="Analysis")
        return AnalysisRead.model_validate(analysis)

    async def correct_analysis(
        self,
        analysis_id: uuid.UUID,
        therapist_id: uuid.UUID,
        corrections: str,
    ) -> AnalysisRead:
        """Attach the therapist's corrections to their analysis.

        Raises:
            NotFoundError: If the analysis does not exist or belongs to
                another therapist
        """
        analysis = await self.repo.get_for_therapist(analysis_id, therapist_id)
        if analysis is None:
            raise NotFoundError(resource="Analysis")
        updated = await self.repo.set_corrections(analysis.id, corrections, utcnow())
        logger.info("Analysis corrected", extra={"analysis_id": str(analysis_id)})
        return AnalysisRead.model_validate(updated)
