"""In-memory doubles for the chat stores and the reply generator."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from api.features.chat.entities.message import Sender
from api.features.chat.exceptions import ConversationNotFoundError
from api.features.chat.models import ConversationModel, MessageModel
from api.features.chat.store import coerce_uuid

_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class Clock:
    """Monotonic fake clock shared by both stores."""

    def __init__(self) -> None:
        self.ticks = 0

    def now(self) -> datetime:
        self.ticks += 1
        return _EPOCH + timedelta(seconds=self.ticks)


class InMemoryConversationStore:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or Clock()
        self.conversations: Dict[UUID, ConversationModel] = {}
        self.fail_with: Optional[Exception] = None

    async def create_conversation(
        self, metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationModel:
        if self.fail_with:
            raise self.fail_with
        now = self.clock.now()
        conversation = ConversationModel(
            id=uuid4(), created_at=now, updated_at=now, metadata=dict(metadata or {})
        )
        self.conversations[conversation.id] = conversation
        return conversation

    async def get_conversation(self, conversation_id) -> Optional[ConversationModel]:
        if self.fail_with:
            raise self.fail_with
        parsed = coerce_uuid(conversation_id)
        return self.conversations.get(parsed) if parsed else None


class InMemoryMessageStore:
    def __init__(self, conversations: InMemoryConversationStore) -> None:
        self.conversations = conversations
        self.messages: List[MessageModel] = []
        # Keyed by sender value; raised on the next write from that sender
        self.fail_on_create: Dict[str, Exception] = {}
        self.recent_calls: List[int] = []

    async def create_message(self, conversation_id, sender, text: str) -> MessageModel:
        sender = Sender(sender)
        failure = self.fail_on_create.get(sender.value)
        if failure:
            raise failure
        parsed = coerce_uuid(conversation_id)
        if parsed is None or parsed not in self.conversations.conversations:
            raise ConversationNotFoundError(str(conversation_id))
        message = MessageModel(
            id=uuid4(),
            conversation_id=parsed,
            sender=sender,
            text=text,
            created_at=self.conversations.clock.now(),
            sequence=len(self.for_conversation(parsed)) + 1,
        )
        self.messages.append(message)
        return message

    async def get_messages(self, conversation_id) -> List[MessageModel]:
        parsed = coerce_uuid(conversation_id)
        return self.for_conversation(parsed) if parsed else []

    async def get_recent_messages(self, conversation_id, limit: int = 10) -> List[MessageModel]:
        self.recent_calls.append(limit)
        parsed = coerce_uuid(conversation_id)
        if parsed is None or limit < 1:
            return []
        return self.for_conversation(parsed)[-limit:]

    def for_conversation(self, conversation_id: UUID) -> List[MessageModel]:
        return [m for m in self.messages if m.conversation_id == conversation_id]


class FakeReplyGenerator:
    """Records every call and answers with a canned reply or a configured error."""

    def __init__(self, reply: str = "Happy to help!") -> None:
        self.reply = reply
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []
        self.healthy = True

    async def generate(self, history, new_message: str) -> str:
        self.calls.append({"history": list(history), "new_message": new_message})
        if self.error:
            raise self.error
        return self.reply

    async def health_check(self) -> bool:
        return self.healthy
