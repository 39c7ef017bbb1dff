from api.features.chat.repositories.conversation_repository import (
    ConversationRepository,
)
from api.features.chat.repositories.message_repository import MessageRepository

__all__ = ["ConversationRepository", "MessageRepository"]
