"""Shared exceptions for the support chat API."""
from typing import Any, Dict, Optional


class SupportChatException(Exception):
    """Base exception for the support chat API.

    ``http_status`` and ``public_message`` drive the app-level error handler;
    ``message`` and ``details`` stay server-side outside of non-prod setups.
    """

    http_status: int = 500
    public_message: str = "An unexpected error occurred. Please try again later."

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SupportChatException):
    """Raised when input validation fails."""

    http_status = 400
    public_message = "Invalid request"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_FAILED", details)


class NotFoundError(SupportChatException):
    """Raised when a resource is not found."""

    http_status = 404
    public_message = "Resource not found."

    def __init__(self, resource: str, identifier: str, error_code: str = "NOT_FOUND"):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(
            message, error_code, {"resource": resource, "identifier": identifier}
        )


class ExternalServiceError(SupportChatException):
    """Raised when external service calls fail."""

    http_status = 503

    def __init__(
        self,
        service: str,
        message: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        full_message = f"{service} service error: {message}"
        error_details = {"service": service}
        if details:
            error_details.update(details)
        super().__init__(full_message, error_code, error_details)
