"""Exceptions for the Chat feature.

Every collaborator failure is classified into exactly one of these kinds and
propagated unchanged; the HTTP layer maps each kind to its own status.
"""
from typing import Any, Dict, Optional

from api.shared.exceptions import (
    ExternalServiceError,
    NotFoundError,
    SupportChatException,
    ValidationError,
)


class SessionNotFoundError(NotFoundError):
    """A message arrived for a session id that does not resolve."""

    public_message = "Session not found. Please start a new conversation."

    def __init__(self, session_id: str):
        super().__init__("Session", session_id, "SESSION_NOT_FOUND")


class ConversationNotFoundError(NotFoundError):
    """History was requested for, or a message written to, an unknown conversation."""

    public_message = "Conversation not found."

    def __init__(self, conversation_id: str):
        super().__init__("Conversation", conversation_id, "CONVERSATION_NOT_FOUND")


class StorageUnavailableError(SupportChatException):
    """The durable store failed or timed out."""

    http_status = 503
    public_message = "Chat storage is temporarily unavailable. Please try again later."

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        timed_out: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details: Dict[str, Any] = {"operation": operation, "timed_out": timed_out}
        if details:
            error_details.update(details)
        super().__init__(
            f"Storage operation '{operation}' failed: {message}",
            "STORAGE_UNAVAILABLE",
            error_details,
        )
        self.timed_out = timed_out
        if timed_out:
            self.http_status = 504
            self.public_message = "Request timed out. Please try again."


class ReplyProviderError(ExternalServiceError):
    """Base class for reply generation failures."""

    public_message = "AI service is temporarily unavailable. Please try again later."

    def __init__(
        self,
        message: str,
        error_code: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details: Dict[str, Any] = {}
        if status_code is not None:
            error_details["provider_status"] = status_code
        if details:
            error_details.update(details)
        super().__init__("Reply provider", message, error_code, error_details)
        self.status_code = status_code


class AuthFailureError(ReplyProviderError):
    """Missing or rejected provider credential."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message, "PROVIDER_AUTH_FAILED", status_code=status_code)


class ProviderRateLimitedError(ReplyProviderError):
    """The provider throttled the request."""

    http_status = 429
    public_message = "Too many requests. Please try again in a moment."

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = 429,
        retry_after: Optional[str] = None,
    ):
        details = {"retry_after": retry_after} if retry_after else None
        super().__init__(
            message, "PROVIDER_RATE_LIMITED", status_code=status_code, details=details
        )
        self.retry_after = retry_after


class ProviderUnavailableError(ReplyProviderError):
    """5xx, connection failure or timeout talking to the provider."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        timed_out: bool = False,
    ):
        super().__init__(
            message,
            "PROVIDER_UNAVAILABLE",
            status_code=status_code,
            details={"timed_out": timed_out},
        )
        self.timed_out = timed_out
        if timed_out:
            self.http_status = 504
            self.public_message = "Request timed out. Please try again."


class GenerationFailedError(ReplyProviderError):
    """Any other provider failure, including an empty completion."""

    public_message = "Failed to generate response. Please try again later."

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message, "GENERATION_FAILED", status_code=status_code)


class ChatValidationError(ValidationError):
    """Payload rejected before it reaches the conversation core."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message, {"errors": errors or []})
