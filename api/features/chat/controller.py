"""Controller for the Chat feature."""
from uuid import UUID

from api.features.chat.dtos import (
    ChatMessageRequest,
    ChatMessageResponse,
    HistoryResponse,
)
from api.features.chat.orchestrator import ChatOrchestrator


class ChatController:
    """Translates between HTTP DTOs and the conversation orchestrator."""

    def __init__(self, orchestrator: ChatOrchestrator):
        self.orchestrator = orchestrator

    async def send_message(self, request: ChatMessageRequest) -> ChatMessageResponse:
        result = await self.orchestrator.process_message(
            request.message, request.session_id
        )
        return ChatMessageResponse.from_result(result)

    async def get_history(self, session_id: UUID) -> HistoryResponse:
        history = await self.orchestrator.get_history(session_id)
        return HistoryResponse.from_history(history)
