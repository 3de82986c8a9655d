"""
Event type definitions for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """
    Base event class.

    All events must inherit from this class.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    """Unique event identifier."""

    timestamp: datetime = Field(default_factory=datetime.now)
    """When the event occurred."""

    source: str
    """Component that generated the event."""


class QueueStateChangedEvent(Event):
    """Event emitted whenever the processing queue's state changes."""

    is_processing: bool
    current_message_id: Optional[str] = None
    current_message_sender: Optional[str] = None
    queue_size: int = 0
    error: Optional[str] = None


class MessageClassifiedEvent(Event):
    """Event emitted when a message reaches its final classification."""

    message_id: str
    sender: str
    classification: str
    explanation: Optional[str] = None
    processing_time_ms: float = 0.0
