"""Centralized dependency injection container.

Stores, the reply generator and the orchestrator are process-wide singletons
built here and handed to each other by constructor, so tests can override any
of them with a double.
"""
from __future__ import annotations

from typing import Optional

import structlog
from dependency_injector import containers, providers

from api.features.chat.knowledge import KnowledgeBase
from api.features.chat.locks import SessionLockRegistry
from core.settings import SETTINGS
from infra.resources import DatabaseResource

logger = structlog.get_logger("support")


def build_session_locks(enabled: bool) -> Optional[SessionLockRegistry]:
    if not enabled:
        return None
    return SessionLockRegistry()


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies."""

    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )

    # Knowledge block for the reply prompt
    knowledge = providers.Singleton(
        KnowledgeBase.from_file,
        SETTINGS.CHAT.KNOWLEDGE_PATH,
        store_name=SETTINGS.CHAT.STORE_NAME,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    conversation_store = providers.Singleton(
        "api.features.chat.store.ConversationStore",
        database=infrastructure.database,
        timeout_seconds=SETTINGS.CHAT.STORAGE_TIMEOUT_SECONDS,
    )

    message_store = providers.Singleton(
        "api.features.chat.store.MessageStore",
        database=infrastructure.database,
        timeout_seconds=SETTINGS.CHAT.STORAGE_TIMEOUT_SECONDS,
    )

    reply_generator = providers.Singleton(
        "api.features.chat.generator.ReplyGenerator",
        api_key=SETTINGS.OPENAI.OPENAI_API_KEY.get_secret_value(),
        knowledge=infrastructure.knowledge,
        model=SETTINGS.OPENAI.OPENAI_MODEL,
        max_tokens=SETTINGS.OPENAI.OPENAI_MAX_TOKENS,
        temperature=SETTINGS.OPENAI.OPENAI_TEMPERATURE,
        timeout_seconds=SETTINGS.OPENAI.OPENAI_TIMEOUT_SECONDS,
        context_window=SETTINGS.CHAT.CONTEXT_WINDOW,
        base_url=SETTINGS.OPENAI.OPENAI_BASE_URL,
    )

    session_locks = providers.Singleton(
        build_session_locks,
        enabled=SETTINGS.CHAT.SERIALIZE_SESSIONS,
    )

    # Conversation orchestrator (shared by all requests)
    chat_orchestrator = providers.Singleton(
        "api.features.chat.orchestrator.ChatOrchestrator",
        conversation_store=conversation_store,
        message_store=message_store,
        reply_generator=reply_generator,
        context_window=SETTINGS.CHAT.CONTEXT_WINDOW,
        session_locks=session_locks,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        orchestrator=services.chat_orchestrator,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
