"""DTOs for the Chat feature."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from api.features.chat.entities.message import Sender
from api.features.chat.models import ChatResult, ConversationHistory
from api.shared.dtos import BaseDTO, utcnow
from core.settings import SETTINGS

MAX_MESSAGE_LENGTH = SETTINGS.CHAT.MAX_MESSAGE_LENGTH


class ChatMessageRequest(BaseDTO):
    """Request to send one user message."""

    message: str = Field(
        ...,
        min_length=1,
        max_length=MAX_MESSAGE_LENGTH,
        description="User message text",
    )
    session_id: Optional[UUID] = Field(
        default=None, alias="sessionId", description="Existing session to continue"
    )

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ChatMessageResponse(BaseDTO):
    """Generated reply and the session it belongs to."""

    reply: str = Field(description="Assistant reply")
    session_id: UUID = Field(alias="sessionId", description="Session identifier")

    @classmethod
    def from_result(cls, result: ChatResult) -> "ChatMessageResponse":
        return cls(reply=result.reply, session_id=result.session_id)


class ConversationDTO(BaseDTO):
    """Conversation DTO."""

    id: UUID = Field(description="Conversation identifier")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last activity timestamp")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    id: UUID = Field(description="Message identifier")
    conversation_id: UUID = Field(description="Owning conversation")
    sender: Sender = Field(description="Message sender: user or ai")
    text: str = Field(description="Message text")
    created_at: datetime = Field(description="Creation timestamp")


class HistoryResponse(BaseDTO):
    """Conversation with its messages in chronological order."""

    conversation: ConversationDTO
    messages: List[MessageDTO]

    @classmethod
    def from_history(cls, history: ConversationHistory) -> "HistoryResponse":
        return cls(
            conversation=ConversationDTO.model_validate(history.conversation),
            messages=[MessageDTO.model_validate(m) for m in history.messages],
        )


class ChatHealthResponse(BaseDTO):
    """Liveness payload for the chat routes."""

    status: str = Field(default="healthy")
    timestamp: datetime = Field(default_factory=utcnow)
