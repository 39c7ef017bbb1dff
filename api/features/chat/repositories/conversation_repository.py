"""Conversation repository using base repository pattern."""
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select, update

from api.features.chat.entities.conversation import Conversation
from api.shared.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation rows."""

    model = Conversation

    async def create_conversation(
        self, metadata: Optional[Dict[str, Any]] = None
    ) -> Conversation:
        return await self.create(Conversation(metadata_=dict(metadata or {})))

    async def lock_for_append(self, conversation_id: UUID) -> bool:
        """Row-lock the conversation until commit; False if it does not exist.

        Appends to one conversation queue up behind this lock, so the
        sequence read that follows sees every committed message. Engines
        without row locks (SQLite) render no FOR UPDATE clause.
        """
        stmt = (
            select(Conversation.id)
            .where(Conversation.id == conversation_id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def touch(self, conversation_id: UUID) -> None:
        """Advance updated_at after a message is appended."""
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(updated_at=func.now())
        )
        await self.session.execute(stmt)
