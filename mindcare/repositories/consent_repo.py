"""Repository for consent operations."""

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.models.db.chat import Chat, Message
from mindcare.models.db.consent import Consent, ConsentStatus


class ConsentRepository:
    """Repository for consent database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_pending(self, chat_id: uuid.UUID, patient_id: uuid.UUID) -> None:
        """Insert a PENDING record unless one already exists for the pair."""
        stmt = insert(Consent).values(
            chat_id=chat_id,
            patient_id=patient_id,
            status=ConsentStatus.PENDING,
        )
        await self.session.execute(
            stmt.on_conflict_do_nothing(
                index_elements=[Consent.chat_id, Consent.patient_id]
            )
        )

    async def get(self, chat_id: uuid.UUID, patient_id: uuid.UUID) -> Consent | None:
        """Get the consent record for a chat/patient pair."""
        result = await self.session.execute(
            select(Consent).where(
                Consent.chat_id == chat_id,
                Consent.patient_id == patient_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_status(
        self,
        chat_id: uuid.UUID,
        patient_id: uuid.UUID,
        status: ConsentStatus,
        responded_at: datetime | None,
    ) -> Consent:
        """Create or overwrite the consent record for a chat/patient pair.

        Args:
            chat_id: The chat ID
            patient_id: The patient's user ID
            status: The new status
            responded_at: Decision time, None for PENDING

        Returns:
            The stored consent record
        """
        stmt = insert(Consent).values(
            chat_id=chat_id,
            patient_id=patient_id,
            status=status,
            responded_at=responded_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Consent.chat_id, Consent.patient_id],
            set_={
                "status": stmt.excluded.status,
                "responded_at": stmt.excluded.responded_at,
            },
        ).returning(Consent)
        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        return result.scalar_one()

    async def list_for_patient(
        self,
        patient_id: uuid.UUID,
    ) -> list[tuple[Consent, Chat, int]]:
        """All of a patient's consents with their chat and its message count.

        Returns:
            Tuples of (consent, chat, message_count), newest request first
        """
        message_count = (
            select(func.count(Message.id))
            .where(Message.chat_id == Chat.id)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(Consent, Chat, message_count)
            .join(Chat, Consent.chat_id == Chat.id)
            .where(Consent.patient_id == patient_id)
            .order_by(Consent.requested_at.desc())
        )
        return [(consent, chat, int(count)) for consent, chat, count in result.all()]
