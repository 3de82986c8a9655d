"""
Inbound SMS entry point.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import time
import uuid
from typing import Optional

from loguru import logger

from smsguard.core.base.classifier import SMSMessage
from smsguard.interfaces.storage import MessageRepository
from smsguard.pipelines.processing_queue import ProcessingQueue

UNKNOWN_SENDER = "Unknown"


class SMSReceiver:
    """Turns raw inbound SMS into stored, queued messages."""

    def __init__(self, repository: MessageRepository, queue: ProcessingQueue):
        self.repository = repository
        self.queue = queue

    async def on_sms_received(
        self,
        sender: Optional[str],
        body: str,
        arrival_time_millis: Optional[int] = None,
    ) -> SMSMessage:
        """
        Store an inbound SMS and queue it for classification.

        Args:
            sender: Originating address (empty becomes "Unknown")
            body: Message text
            arrival_time_millis: Arrival time in epoch milliseconds
                (defaults to now)

        Returns:
            The stored PENDING message
        """
        message = SMSMessage(
            id=str(uuid.uuid4()),
            sender=sender or UNKNOWN_SENDER,
            body=body,
            timestamp=(
                arrival_time_millis
                if arrival_time_millis is not None
                else int(time.time() * 1000)
            ),
        )

        logger.info(f"SMS received from {message.sender}: \"{message.preview()}\"")

        await self.repository.add_message(message)
        await self.queue.enqueue(message)
        return message
