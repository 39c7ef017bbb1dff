"""Conversation orchestrator: the coordinator behind the chat endpoints.

One turn is: resolve or create the conversation, persist the user message,
read the bounded recent context, generate a reply, persist the reply. The
orchestrator holds no per-request state and is shared by all requests. It
never retries; every collaborator failure is propagated as classified.
"""
from typing import List, Optional

import structlog

from api.features.chat.entities.message import Sender
from api.features.chat.exceptions import (
    ConversationNotFoundError,
    SessionNotFoundError,
    StorageUnavailableError,
)
from api.features.chat.generator import ReplyGenerator
from api.features.chat.locks import SessionLockRegistry
from api.features.chat.models import (
    ChatResult,
    ConversationHistory,
    MessageModel,
)
from api.features.chat.store import ConversationStore, IdLike, MessageStore

logger = structlog.get_logger("support.chat.orchestrator")


class ChatOrchestrator:
    """Coordinates the conversation stores and the reply generator."""

    def __init__(
        self,
        *,
        conversation_store: ConversationStore,
        message_store: MessageStore,
        reply_generator: ReplyGenerator,
        context_window: int = 10,
        session_locks: Optional[SessionLockRegistry] = None,
    ):
        if context_window < 1:
            raise ValueError("context_window must be at least 1")
        self.conversation_store = conversation_store
        self.message_store = message_store
        self.reply_generator = reply_generator
        self.context_window = context_window
        self.session_locks = session_locks

    async def process_message(
        self, message: str, session_id: Optional[IdLike] = None
    ) -> ChatResult:
        """Run one user turn and return the reply with the resolved session id.

        Raises:
            SessionNotFoundError: ``session_id`` was given but does not resolve.
            StorageUnavailableError: a store read or write failed.
            ReplyProviderError: reply generation failed (no ai message is stored).
        """
        conversation_id = await self._resolve_conversation(session_id)
        log = logger.bind(conversation_id=str(conversation_id))

        if self.session_locks is not None and session_id is not None:
            async with self.session_locks.hold(conversation_id):
                reply = await self._run_turn(conversation_id, message, log)
        else:
            reply = await self._run_turn(conversation_id, message, log)

        return ChatResult(reply=reply, session_id=conversation_id)

    async def get_history(self, session_id: IdLike) -> ConversationHistory:
        """Return the conversation and all of its messages, oldest first."""
        conversation = await self.conversation_store.get_conversation(session_id)
        if conversation is None:
            raise ConversationNotFoundError(str(session_id))
        messages = await self.message_store.get_messages(conversation.id)
        return ConversationHistory(conversation=conversation, messages=messages)

    async def _resolve_conversation(self, session_id: Optional[IdLike]):
        if session_id is None:
            conversation = await self.conversation_store.create_conversation()
            logger.info("conversation_started", conversation_id=str(conversation.id))
            return conversation.id

        conversation = await self.conversation_store.get_conversation(session_id)
        if conversation is None:
            logger.info("session_not_found", session_id=str(session_id))
            raise SessionNotFoundError(str(session_id))
        return conversation.id

    async def _run_turn(self, conversation_id, message: str, log) -> str:
        try:
            user_message = await self.message_store.create_message(
                conversation_id, Sender.USER, message
            )
        except ConversationNotFoundError as exc:
            # Conversation vanished between lookup and write
            raise SessionNotFoundError(str(conversation_id)) from exc

        history = await self._context_for(conversation_id, user_message)
        log.info(
            "reply_requested",
            history_messages=len(history),
            message_length=len(message),
        )

        reply = await self.reply_generator.generate(history, message)

        try:
            await self.message_store.create_message(conversation_id, Sender.AI, reply)
        except StorageUnavailableError:
            # Generated reply is discarded; the user turn stays unanswered
            log.error("ai_reply_not_persisted", reply_length=len(reply))
            raise

        log.info("turn_completed", reply_length=len(reply))
        return reply

    async def _context_for(
        self, conversation_id, user_message: MessageModel
    ) -> List[MessageModel]:
        recent = await self.message_store.get_recent_messages(
            conversation_id, self.context_window
        )
        # The new message goes to the generator separately, exactly once
        return [item for item in recent if item.id != user_message.id]
