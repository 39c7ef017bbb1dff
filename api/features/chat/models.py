"""Domain models for the Chat feature."""
from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.features.chat.entities.conversation import Conversation as ConversationEntity
from api.features.chat.entities.message import Message as MessageEntity, Sender


class ConversationModel(BaseModel):
    """Domain model for a conversation."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID = Field(description="Conversation identifier, also the session id")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last activity timestamp")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Open metadata")

    @classmethod
    def from_entity(cls, entity: ConversationEntity) -> "ConversationModel":
        """Create model from database entity."""
        return cls(
            id=entity.id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            metadata=dict(entity.metadata_ or {}),
        )


class MessageModel(BaseModel):
    """Domain model for a single message."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID = Field(description="Message identifier")
    conversation_id: UUID = Field(description="Owning conversation")
    sender: Sender = Field(description="user or ai")
    text: str = Field(description="Message text")
    created_at: datetime = Field(description="Persistence timestamp")
    sequence: int = Field(description="Insertion order within the conversation")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Open metadata")

    @classmethod
    def from_entity(cls, entity: MessageEntity) -> "MessageModel":
        """Create model from database entity."""
        return cls(
            id=entity.id,
            conversation_id=entity.conversation_id,
            sender=entity.sender,
            text=entity.text,
            created_at=entity.created_at,
            sequence=entity.sequence,
            metadata=dict(entity.metadata_ or {}),
        )


class ChatResult(BaseModel):
    """Outcome of one processed turn."""

    model_config = ConfigDict(frozen=True)

    reply: str
    session_id: UUID


class ConversationHistory(BaseModel):
    """A conversation with its full message log, oldest first."""

    model_config = ConfigDict(frozen=True)

    conversation: ConversationModel
    messages: List[MessageModel]
