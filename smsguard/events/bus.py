"""
Event bus implementation for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from smsguard.events.types import Event

EventHandler = Callable[[Event], Awaitable[None]]
T = TypeVar("T", bound=Event)


class EventBus:
    """
    Async event bus for broadcasting state to observers.

    Handler errors are logged, never propagated to the emitter.
    """

    def __init__(self):
        """Initialize event bus."""
        self._handlers: dict[type[Event], list[EventHandler]] = defaultdict(list)

    def subscribe(
        self,
        event_type: type[T],
        handler: Callable[[T], Awaitable[None]],
    ) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Async handler function
        """
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type.__name__}")

    async def emit(self, event: Event) -> None:
        """
        Emit an event to all subscribed handlers.

        Args:
            event: Event to emit
        """
        handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            return

        logger.trace(f"Emitting event: {event.__class__.__name__} (id={event.id})")

        await asyncio.gather(*(self._execute_handler(handler, event) for handler in handlers))

    async def _execute_handler(self, handler: EventHandler, event: Event) -> Any:
        try:
            return await handler(event)
        except Exception as e:
            logger.error(
                f"Error in event handler {getattr(handler, '__name__', handler)!s} "
                f"for event {event.__class__.__name__}: {e}"
            )
            return None
