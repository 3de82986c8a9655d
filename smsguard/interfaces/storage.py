"""
Storage protocol for persisting SMS messages.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from typing import Awaitable, Callable, List, Optional, Protocol

from smsguard.core.base.classifier import SMSMessage

MessageListener = Callable[[List[SMSMessage]], Awaitable[None]]


class MessageRepository(Protocol):
    """
    Protocol for message storage backends.

    Implementations can use databases, file systems, or memory.
    """

    async def add_message(self, message: SMSMessage) -> None:
        """
        Store a newly received message.

        Args:
            message: Message to store
        """
        ...

    async def update_message(self, message: SMSMessage) -> None:
        """
        Replace the stored message with the same id, or insert it.

        Args:
            message: Message to store
        """
        ...

    async def get_message(self, message_id: str) -> Optional[SMSMessage]:
        """
        Retrieve a message by id.

        Returns:
            Message or None if not found
        """
        ...

    async def get_all_messages(self) -> List[SMSMessage]:
        """
        Retrieve all messages, newest first.
        """
        ...
