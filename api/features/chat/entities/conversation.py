"""Conversation entity: one row per chat session."""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Conversation(BaseEntity):
    """A conversation thread. Its id doubles as the client session id."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[Dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
