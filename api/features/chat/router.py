"""Router for the Chat feature.

Typed chat exceptions are not caught here; the app-level handlers in
``api.main`` map them to status codes.
"""
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path

from api.features.chat.controller import ChatController
from api.features.chat.dtos import (
    ChatHealthResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    HistoryResponse,
)
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post("/message", response_model=ChatMessageResponse)
@inject
async def send_message(
    request: ChatMessageRequest,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """Send a message and get the assistant reply."""
    return await controller.send_message(request)


@router.get("/history/{session_id}", response_model=HistoryResponse)
@inject
async def get_history(
    session_id: UUID = Path(..., description="Session identifier (UUID)"),
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """Get the full conversation history for a session."""
    return await controller.get_history(session_id)


@router.get("/health", response_model=ChatHealthResponse)
async def health_check():
    return ChatHealthResponse(status="healthy")
