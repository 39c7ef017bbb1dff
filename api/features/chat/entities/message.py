"""Message entity and the closed sender tag."""
from enum import Enum
from typing import Any, Dict
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from api.features.chat.entities.conversation import JSONType
from api.shared.entities.base import BaseEntity


class Sender(str, Enum):
    """Who wrote a message."""

    USER = "user"
    AI = "ai"


class Message(BaseEntity):
    """One immutable turn of a conversation."""

    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "sequence", name="uq_message_conversation_sequence"
        ),
        CheckConstraint("length(text) > 0", name="ck_message_text_not_empty"),
        Index("ix_message_conversation_created_at", "conversation_id", "created_at"),
    )

    conversation_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Per-conversation insertion counter, breaks created_at ties
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    sender: Mapped[Sender] = mapped_column(
        SQLEnum(
            Sender,
            name="message_sender",
            native_enum=False,
            length=10,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[Dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
