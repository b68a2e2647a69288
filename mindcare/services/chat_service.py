"""The chat ledger: patient conversations with the AI assistant."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import CollaboratorError, NotFoundError
from mindcare.models.db.base import utcnow
from mindcare.models.db.chat import Chat, Message, MessageRole
from mindcare.models.domain.chat import ChatDetail, ChatRead, MessageRead
from mindcare.models.domain.consent import ConsentRead
from mindcare.repositories.chat_repo import ChatRepository
from mindcare.services.llm_client import HistoryMessage, LLMClient, LLMError

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50


def to_history(messages: list[Message]) -> list[HistoryMessage]:
    """Convert stored messages to the LLM client's message format."""
    return [HistoryMessage(role=m.role.value, content=m.content) for m in messages]


def to_chat_read(chat: Chat) -> ChatRead:
    """Convert a chat with loaded messages to its read schema."""
    return ChatRead(
        id=chat.id,
        patient_id=chat.patient_id,
        title=chat.title,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
        message_count=len(chat.messages),
        messages=[MessageRead.model_validate(m) for m in chat.messages],
    )


class ChatService:
    """Service for a patient's chats and the messages in them."""

    def __init__(self, session: AsyncSession, llm_client: LLMClient) -> None:
        self.session = session
        self.llm_client = llm_client
        self.repo = ChatRepository(session)

    async def post_message(
        self,
        patient_id: uuid.UUID,
        text: str,
        chat_id: uuid.UUID | None = None,
    ) -> tuple[ChatRead, str]:
        """Append a patient message and the assistant's reply.

        The patient's message is committed before the model is called, so a
        failed generation leaves it in the chat. Retrying appends it again.

        Args:
            patient_id: The sending patient
            text: Message text
            chat_id: Existing chat, or None to start a new one titled after
                the first message

        Returns:
            The updated chat and the reply text

        Raises:
            NotFoundError: If chat_id is given but not owned by the patient
            CollaboratorError: If the reply could not be generated
        """
        if chat_id is not None:
            chat = await self.repo.get_for_patient(chat_id, patient_id)
            if chat is None:
                raise NotFoundError(resource="Chat")
            history = to_history(chat.messages)
            guidance = chat.therapist_guidance
        else:
            chat = await self.repo.create(
                Chat(patient_id=patient_id, title=text[:TITLE_MAX_LENGTH])
            )
            history = []
            guidance = None
            logger.info("Chat created", extra={"chat_id": str(chat.id)})

        sequence = await self.repo.get_next_sequence_number(chat.id)
        await self.repo.add_message(
            Message(
                chat_id=chat.id,
                role=MessageRole.USER,
                content=text,
                sequence_number=sequence,
                created_at=utcnow(),
            )
        )
        await self.repo.touch(chat.id, utcnow())
        await self.session.commit()

        history.append(HistoryMessage(role="user", content=text))
        try:
            reply = await self.llm_client.generate_reply(history, guidance)
        except LLMError as e:
            logger.error(
                "Reply generation failed",
                extra={"chat_id": str(chat.id), "retryable": e.is_retryable},
            )
            raise CollaboratorError("Failed to generate a response") from e

        await self.repo.add_message(
            Message(
                chat_id=chat.id,
                role=MessageRole.ASSISTANT,
                content=reply,
                sequence_number=sequence + 1,
                created_at=utcnow(),
            )
        )
        await self.repo.touch(chat.id, utcnow())

        updated = await self.repo.get_for_patient(chat.id, patient_id)
        if updated is None:
            raise NotFoundError(resource="Chat")
        return to_chat_read(updated), reply

    async def list_chats(self, patient_id: uuid.UUID) -> list[ChatRead]:
        """List the patient's chats, most recently active first."""
        chats = await self.repo.list_for_patient(patient_id)
        return [to_chat_read(chat) for chat in chats]

    async def get_chat(self, chat_id: uuid.UUID, patient_id: uuid.UUID) -> ChatDetail:
        """Get one of the patient's chats with its consent records.

        Raises:
            NotFoundError: If the chat does not exist or is someone else's
        """
        chat = await self.repo.get_for_patient(chat_id, patient_id, include_consents=True)
        if chat is None:
            raise NotFoundError(resource="Chat")
        consents = sorted(chat.consents, key=lambda c: c.requested_at, reverse=True)
        return ChatDetail(
            **to_chat_read(chat).model_dump(),
            consents=[ConsentRead.model_validate(c) for c in consents],
        )

    async def delete_chat(self, chat_id: uuid.UUID, patient_id: uuid.UUID) -> None:
        """Delete a chat with its messages, consents and analyses.

        Raises:
            NotFoundError: If the chat does not exist or is someone else's
        """
        chat = await self.repo.get_for_patient(chat_id, patient_id, include_messages=False)
        if chat is None:
            raise NotFoundError(resource="Chat")
        await self.repo.delete(chat)
        logger.info("Chat deleted", extra={"chat_id": str(chat_id)})
