"""Service for therapist guidance on shared chats."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.exceptions import NotFoundError
from mindcare.models.domain.analysis import GuidanceRead
from mindcare.repositories.chat_repo import ChatRepository

logger = logging.getLogger(__name__)


class GuidanceService:
    """Reads and writes the guidance injected into a chat's replies."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.chat_repo = ChatRepository(session)

    async def get_guidance(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
    ) -> GuidanceRead:
        """Current guidance of a chat the therapist may read."""
        chat = await self.chat_repo.get_visible_to_therapist(chat_id, therapist_id)
        if chat is None:
            raise NotFoundError(resource="Chat")
        return GuidanceRead(chat_id=chat.id, guidance=chat.therapist_guidance)

    async def set_guidance(
        self,
        chat_id: uuid.UUID,
        therapist_id: uuid.UUID,
        guidance: str | None,
    ) -> GuidanceRead:
        """Store guidance verbatim, or clear it when empty.

        The next reply generated in the chat reads the stored value.

        Raises:
            NotFoundError: If the chat is missing, not shared, or its patient
                is not assigned to the therapist
        """
        chat = await self.chat_repo.get_visible_to_therapist(chat_id, therapist_id)
        if chat is None:
            raise NotFoundError(resource="Chat")

        value = guidance if guidance and guidance.strip() else None
        await self.chat_repo.update_guidance(chat.id, value)
        logger.info(
            "Guidance updated",
            extra={"chat_id": str(chat_id), "cleared": value is None},
        )
        return GuidanceRead(chat_id=chat.id, guidance=value)
