"""Message repository: append-only log grouped by conversation."""
from typing import List
from uuid import UUID

from sqlalchemy import func, select

from api.features.chat.entities.message import Message, Sender
from api.shared.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for message rows with ordered history queries."""

    model = Message

    async def next_sequence(self, conversation_id: UUID) -> int:
        stmt = select(func.max(Message.sequence)).where(
            Message.conversation_id == conversation_id
        )
        current = (await self.session.execute(stmt)).scalar_one()
        return 1 if current is None else int(current) + 1

    async def append(self, conversation_id: UUID, sender: Sender, text: str) -> Message:
        sequence = await self.next_sequence(conversation_id)
        return await self.create(
            Message(
                conversation_id=conversation_id,
                sequence=sequence,
                sender=sender,
                text=text,
                metadata_={},
            )
        )

    async def list_for_conversation(self, conversation_id: UUID) -> List[Message]:
        """All messages, oldest first."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.sequence.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_recent(self, conversation_id: UUID, limit: int) -> List[Message]:
        """The newest ``limit`` messages, returned oldest first."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.sequence.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())
        # Query runs newest-first; callers always get chronological order
        rows.reverse()
        return rows
