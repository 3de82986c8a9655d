"""
In-memory message repository.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
from typing import List, Optional

from loguru import logger

from smsguard.core.base.classifier import SMSMessage
from smsguard.interfaces.storage import MessageListener


class InMemoryMessageRepository:
    """
    Message store held in process memory.

    Messages are kept newest first. Listeners receive the full message
    list after every change.
    """

    def __init__(self):
        self._messages: List[SMSMessage] = []
        self._listeners: List[MessageListener] = []
        self._lock = asyncio.Lock()

    def subscribe(self, listener: MessageListener) -> None:
        """Register an async callback invoked with the message list on change."""
        self._listeners.append(listener)

    async def add_message(self, message: SMSMessage) -> None:
        async with self._lock:
            self._messages.insert(0, message)
            snapshot = list(self._messages)
        logger.debug(f"Stored message {message.id} from {message.sender}")
        await self._notify(snapshot)

    async def update_message(self, message: SMSMessage) -> None:
        async with self._lock:
            for index, existing in enumerate(self._messages):
                if existing.id == message.id:
                    self._messages[index] = message
                    break
            else:
                self._messages.insert(0, message)
            snapshot = list(self._messages)
        logger.debug(
            f"Updated message {message.id}: {message.classification.name} "
            f"(processed={message.is_processed})"
        )
        await self._notify(snapshot)

    async def get_message(self, message_id: str) -> Optional[SMSMessage]:
        async with self._lock:
            for message in self._messages:
                if message.id == message_id:
                    return message
        return None

    async def get_all_messages(self) -> List[SMSMessage]:
        async with self._lock:
            return list(self._messages)

    async def clear(self) -> None:
        async with self._lock:
            self._messages.clear()
        await self._notify([])

    async def _notify(self, messages: List[SMSMessage]) -> None:
        for listener in self._listeners:
            try:
                await listener(messages)
            except Exception as e:
                logger.error(f"Message listener error: {e}")

    def __len__(self) -> int:
        return len(self._messages)
