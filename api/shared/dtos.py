"""Shared DTOs for the support chat API."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""

    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=utcnow)
    version: Optional[str] = Field(default=None)
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseDTO):
    """Error response DTO."""

    error: str = Field(description="User-facing error message")
    error_code: str = Field(alias="errorCode", description="Error code")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error details (non-prod only)"
    )
