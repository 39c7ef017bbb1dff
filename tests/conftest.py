from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from dependency_injector import providers

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.features.chat.knowledge import KnowledgeBase  # noqa: E402
from api.features.chat.orchestrator import ChatOrchestrator  # noqa: E402
from api.shared.entities.registry import BaseEntity  # noqa: E402
from infra.resources import DatabaseResource  # noqa: E402
from tests.fakes import (  # noqa: E402
    Clock,
    FakeReplyGenerator,
    InMemoryConversationStore,
    InMemoryMessageStore,
)


@pytest.fixture
def knowledge() -> KnowledgeBase:
    return KnowledgeBase(
        store_name="Test Store",
        text="Return Policy: 30-day returns on unused items.",
    )


@pytest.fixture
def conversation_store() -> InMemoryConversationStore:
    return InMemoryConversationStore(Clock())


@pytest.fixture
def message_store(conversation_store) -> InMemoryMessageStore:
    return InMemoryMessageStore(conversation_store)


@pytest.fixture
def reply_generator() -> FakeReplyGenerator:
    return FakeReplyGenerator()


@pytest.fixture
def orchestrator(conversation_store, message_store, reply_generator) -> ChatOrchestrator:
    return ChatOrchestrator(
        conversation_store=conversation_store,
        message_store=message_store,
        reply_generator=reply_generator,
        context_window=10,
    )


@pytest.fixture
async def database(tmp_path):
    """File-backed SQLite database with the chat schema created."""
    resource = DatabaseResource(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    await resource.init()
    await resource.create_schema(BaseEntity.metadata)
    try:
        yield resource
    finally:
        await resource.shutdown()


@pytest.fixture
def mock_database():
    db = MagicMock(spec=DatabaseResource)
    db.init = AsyncMock(return_value=db)
    db.ping = AsyncMock(return_value=True)
    db.create_schema = AsyncMock()
    db.shutdown = AsyncMock()
    return db


@pytest.fixture
def make_app(orchestrator, reply_generator, mock_database):
    """Build FastAPI apps wired to the in-memory stores and the fake generator."""
    from api.main import create_fastapi_app
    from di.container import ApplicationContainer

    containers = []

    def _make(settings=None):
        container = ApplicationContainer()
        container.infrastructure.database.override(providers.Object(mock_database))
        container.services.reply_generator.override(providers.Object(reply_generator))
        container.services.chat_orchestrator.override(providers.Object(orchestrator))
        containers.append(container)
        return create_fastapi_app(container=container, settings=settings)

    yield _make

    for container in containers:
        container.unwire()
        container.services.chat_orchestrator.reset_override()
        container.services.reply_generator.reset_override()
        container.infrastructure.database.reset_override()


@pytest.fixture
def app(make_app):
    return make_app()
