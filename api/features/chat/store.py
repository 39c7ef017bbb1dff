"""Durable conversation and message stores.

Each public operation is one logical unit against the database: it opens its
own session, commits, and closes. Operations are bounded by a timeout, and any
database or timeout failure surfaces as ``StorageUnavailableError``.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities.message import Sender
from api.features.chat.exceptions import (
    ChatValidationError,
    ConversationNotFoundError,
    StorageUnavailableError,
)
from api.features.chat.models import ConversationModel, MessageModel
from api.features.chat.repositories import ConversationRepository, MessageRepository
from infra.resources import DatabaseResource

logger = logging.getLogger("support.chat.store")

T = TypeVar("T")
IdLike = Union[UUID, str]

# Upper bound on reruns after losing a sequence race to a concurrent append
APPEND_CONFLICT_ATTEMPTS = 8


def coerce_uuid(value: IdLike) -> Optional[UUID]:
    """Parse an id; malformed values resolve to None instead of raising."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class _SqlStore:
    def __init__(self, database: DatabaseResource, timeout_seconds: float = 5.0):
        self.database = database
        self.timeout_seconds = timeout_seconds

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
        *,
        conflict_attempts: int = 1,
    ) -> T:
        attempt = 1
        while True:
            try:
                return await asyncio.wait_for(
                    self._in_session(work), timeout=self.timeout_seconds
                )
            except IntegrityError as exc:
                if attempt >= conflict_attempts:
                    logger.error(f"Storage operation {operation} failed: {exc}")
                    raise StorageUnavailableError(operation, str(exc)) from exc
                # A concurrent writer committed first; rerun against fresh state
                logger.info(
                    f"Storage operation {operation} hit a write conflict, "
                    f"retrying ({attempt}/{conflict_attempts})"
                )
                attempt += 1
            except asyncio.TimeoutError as exc:
                logger.warning(
                    f"Storage operation {operation} timed out after {self.timeout_seconds}s"
                )
                raise StorageUnavailableError(
                    operation, f"timed out after {self.timeout_seconds}s", timed_out=True
                ) from exc
            except (SQLAlchemyError, OSError) as exc:
                logger.error(f"Storage operation {operation} failed: {exc}")
                raise StorageUnavailableError(operation, str(exc)) from exc
            except RuntimeError as exc:
                # Session factory missing: the database resource was never initialised
                raise StorageUnavailableError(operation, str(exc)) from exc

    async def _in_session(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.database.session() as session:
            result = await work(session)
            await session.commit()
            return result


class ConversationStore(_SqlStore):
    """Durable record of conversation existence and metadata."""

    async def create_conversation(
        self, metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationModel:
        async def work(session: AsyncSession) -> ConversationModel:
            entity = await ConversationRepository(session).create_conversation(metadata)
            return ConversationModel.from_entity(entity)

        conversation = await self._run("create_conversation", work)
        logger.info(f"Conversation created: {conversation.id}")
        return conversation

    async def get_conversation(self, conversation_id: IdLike) -> Optional[ConversationModel]:
        parsed = coerce_uuid(conversation_id)
        if parsed is None:
            return None

        async def work(session: AsyncSession) -> Optional[ConversationModel]:
            entity = await ConversationRepository(session).get_by_id(parsed)
            return ConversationModel.from_entity(entity) if entity else None

        return await self._run("get_conversation", work)


class MessageStore(_SqlStore):
    """Append-only message log grouped by conversation."""

    async def create_message(
        self, conversation_id: IdLike, sender: Union[Sender, str], text: str
    ) -> MessageModel:
        try:
            sender = Sender(sender)
        except ValueError as exc:
            raise ChatValidationError(f"Unknown sender '{sender}'") from exc
        if not text:
            raise ChatValidationError("Message text cannot be empty")
        parsed = coerce_uuid(conversation_id)
        if parsed is None:
            raise ConversationNotFoundError(str(conversation_id))

        async def work(session: AsyncSession) -> MessageModel:
            conversations = ConversationRepository(session)
            if not await conversations.lock_for_append(parsed):
                raise ConversationNotFoundError(str(parsed))
            entity = await MessageRepository(session).append(parsed, sender, text)
            await conversations.touch(parsed)
            return MessageModel.from_entity(entity)

        return await self._run(
            "create_message", work, conflict_attempts=APPEND_CONFLICT_ATTEMPTS
        )

    async def get_messages(self, conversation_id: IdLike) -> List[MessageModel]:
        parsed = coerce_uuid(conversation_id)
        if parsed is None:
            return []

        async def work(session: AsyncSession) -> List[MessageModel]:
            rows = await MessageRepository(session).list_for_conversation(parsed)
            return [MessageModel.from_entity(row) for row in rows]

        return await self._run("get_messages", work)

    async def get_recent_messages(
        self, conversation_id: IdLike, limit: int = 10
    ) -> List[MessageModel]:
        parsed = coerce_uuid(conversation_id)
        if parsed is None or limit < 1:
            return []

        async def work(session: AsyncSession) -> List[MessageModel]:
            rows = await MessageRepository(session).list_recent(parsed, limit)
            return [MessageModel.from_entity(row) for row in rows]

        return await self._run("get_recent_messages", work)
