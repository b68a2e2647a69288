"""Repository for chat and message operations."""

import uuid
from datetime import datetime

from sqlalchemy import ColumnElement, and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindcare.models.db.chat import Chat, Message
from mindcare.models.db.consent import Consent, ConsentStatus
from mindcare.models.db.user import User


def has_approved_consent() -> ColumnElement[bool]:
    """Chat has at least one APPROVED consent."""
    return Chat.consents.any(Consent.status == ConsentStatus.APPROVED)


def visible_to_therapist(therapist_id: uuid.UUID) -> ColumnElement[bool]:
    """Chat's patient is assigned to the therapist and the chat is shared.

    Evaluated inside every query; nothing about visibility is cached.
    """
    return and_(
        Chat.patient.has(User.therapist_id == therapist_id),
        has_approved_consent(),
    )


class ChatRepository:
    """Repository for chat database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, chat: Chat) -> Chat:
        """Create a new chat."""
        self.session.add(chat)
        await self.session.flush()
        await self.session.refresh(chat)
        return chat

    async def get_for_patient(
        self,
        chat_id: uuid.UUID,
        patient_id: uuid.UUID,
        include_messages: bool = True,
        include_consents: bool = False,
    ) -> Chat | None:
        """Get a chat by ID, ensuring it belongs to the patient.

        Args:
            chat_id: The chat ID
            patient_id: The patient's user ID
            include_messages: Whether to eagerly load messages
            include_consents: Whether to eagerly load consent records

        Returns:
            The chat or None if not found or not owned by the patient
        """
        query = select(Chat).where(Chat.id == chat_id, Chat.patient_id == patient_id)
        if include_messages:
            query = query.options(selectinload(Chat.messages))
        if include_consents:
            query = query.options(selectinload(Chat.consents))
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def list_for_patient(self, patient_id: uuid.UUID) -> list[Chat]:
        """List a patient's chats with messages, most recently updated first."""
        result = await self.session.execute(
            select(Chat)
            .where(Chat.patient_id == patient_id)
            .options(selectinload(Chat.messages))
            .order_by(Chat.updated_at.desc())
        )
        return list(result.scalars().all())

    async def get_visible_to_therapist(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
        include_messages: bool = False,
    ) -> Chat | None:
        """Get a chat only if the therapist may currently read it."""
        query = select(Chat).where(Chat.id == chat_id, visible_to_therapist(therapist_id))
        if include_messages:
            query = query.options(selectinload(Chat.messages))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_visible_for_patient(
        self,
        patient_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> list[Chat]:
        """List a patient's chats the therapist may read, with messages.

        Args:
            patient_id: The patient whose chats to list
            therapist_id: The therapist asking

        Returns:
            Shared chats, most recently updated first
        """
        result = await self.session.execute(
            select(Chat)
            .where(Chat.patient_id == patient_id, visible_to_therapist(therapist_id))
            .options(selectinload(Chat.messages))
            .order_by(Chat.updated_at.desc())
        )
        return list(result.scalars().all())

    async def summarize_for_patients(
        self,
        patient_ids: list[uuid.UUID],
    ) -> list[tuple[Chat, int, bool]]:
        """Chats of several patients with message count and shared flag.

        Returns:
            Tuples of (chat, message_count, has_approved_consent), most
            recently updated first
        """
        if not patient_ids:
            return []
        message_count = (
            select(func.count(Message.id))
            .where(Message.chat_id == Chat.id)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(Chat, message_count, has_approved_consent())
            .where(Chat.patient_id.in_(patient_ids))
            .order_by(Chat.updated_at.desc())
        )
        return [(chat, int(count), bool(approved)) for chat, count, approved in result.all()]

    async def add_message(self, message: Message) -> Message:
        """Append a message to a chat."""
        self.session.add(message)
        await self.session.flush()
        await self.session.refresh(message)
        return message

    async def get_next_sequence_number(self, chat_id: uuid.UUID) -> int:
        """Get the next sequence number for a message in a chat (1-indexed)."""
        result = await self.session.execute(
            select(func.coalesce(func.max(Message.sequence_number), 0))
            .where(Message.chat_id == chat_id)
        )
        return int(result.scalar_one()) + 1

    async def touch(self, chat_id: uuid.UUID, at: datetime) -> None:
        """Bump the chat's last activity time."""
        await self.session.execute(
            update(Chat).where(Chat.id == chat_id).values(updated_at=at)
        )

    async def update_guidance(self, chat_id: uuid.UUID, guidance: str | None) -> None:
        """Replace the chat's therapist guidance."""
        await self.session.execute(
            update(Chat).where(Chat.id == chat_id).values(therapist_guidance=guidance)
        )

    async def delete(self, chat: Chat) -> None:
        """Delete a chat; messages, consents and analyses cascade."""
        await self.session.delete(chat)
        await self.session.flush()
