"""Repository for AI analysis operations."""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.models.db.analysis import AIAnalysis, RiskLevel, Sentiment
from mindcare.models.db.base import utcnow


class AnalysisRepository:
    """Repository for analysis database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
        analysis: str,
        predictions: str | None,
        sentiment: Sentiment,
        risk_level: RiskLevel,
    ) -> AIAnalysis:
        """Insert or refresh the therapist's analysis of a chat.

        Only the model output columns are overwritten on conflict, so an
        existing correction survives regeneration.

        Returns:
            The stored analysis
        """
        now = utcnow()
        stmt = insert(AIAnalysis).values(
            chat_id=chat_id,
            therapist_id=therapist_id,
            analysis=analysis,
            predictions=predictions,
            sentiment=sentiment,
            risk_level=risk_level,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AIAnalysis.chat_id, AIAnalysis.therapist_id],
            set_={
                "analysis": stmt.excluded.analysis,
                "predictions": stmt.excluded.predictions,
                "sentiment": stmt.excluded.sentiment,
                "risk_level": stmt.excluded.risk_level,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(AIAnalysis)
        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        return result.scalar_one()

    async def get_for_therapist(
        self,
        analysis_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> AIAnalysis | None:
        """Get an analysis by ID, only if it belongs to the therapist."""
        result = await self.session.execute(
            select(AIAnalysis).where(
                AIAnalysis.id == analysis_id,
                AIAnalysis.therapist_id == therapist_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_chat(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> AIAnalysis | None:
        """Get the therapist's analysis of a chat."""
        result = await self.session.execute(
            select(AIAnalysis).where(
                AIAnalysis.chat_id == chat_id,
                AIAnalysis.therapist_id == therapist_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_chats(
        self,
        chat_ids: list[uuid.UUID],
        therapist_id: uuid.UUID,
    ) -> dict[uuid.UUID, AIAnalysis]:
        """The therapist's analyses for several chats, keyed by chat ID."""
        if not chat_ids:
            return {}
        result = await self.session.execute(
            select(AIAnalysis).where(
                AIAnalysis.chat_id.in_(chat_ids),
                AIAnalysis.therapist_id == therapist_id,
            )
        )
        return {a.chat_id: a for a in result.scalars().all()}

    async def set_corrections(
        self,
        analysis_id: uuid.UUID,
        corrections: str,
        corrected_at: datetime,
    ) -> AIAnalysis:
        """Store the therapist's correction overlay."""
        result = await self.session.execute(
            update(AIAnalysis)
            .where(AIAnalysis.id == analysis_id)
            .values(therapist_corrections=corrections, corrected_at=corrected_at)
            .returning(AIAnalysis)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
