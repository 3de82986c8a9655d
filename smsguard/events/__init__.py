"""
Event broadcasting for SMSGuard.

Processing state and classification results are published on an
EventBus so that observers (UI, logging, tests) stay decoupled from the
processing queue.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.events.bus import EventBus
from smsguard.events.types import (
    Event,
    MessageClassifiedEvent,
    QueueStateChangedEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "MessageClassifiedEvent",
    "QueueStateChangedEvent",
]
