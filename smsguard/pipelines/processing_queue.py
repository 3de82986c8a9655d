"""
Single-flight background processing queue for inbound SMS.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
import concurrent.futures
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional, Tuple

from loguru import logger

from smsguard.core.base.classifier import Classification, SMSClassifier, SMSMessage
from smsguard.core.resource_manager.monitor import ResourceMonitor
from smsguard.core.retry import RetryConfig, retry_async
from smsguard.events.bus import EventBus
from smsguard.events.types import MessageClassifiedEvent, QueueStateChangedEvent
from smsguard.interfaces.storage import MessageRepository


@dataclass(frozen=True)
class ProcessingState:
    """Snapshot of the queue for observers."""

    is_processing: bool = False
    current_message: Optional[SMSMessage] = None
    queue_size: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_processing": self.is_processing,
            "current_message_sender": (
                self.current_message.sender if self.current_message else None
            ),
            "queue_size": self.queue_size,
            "error": self.error,
        }


class ProcessingQueue:
    """
    FIFO queue that classifies messages one at a time.

    A single worker task drains the queue and exits when it is empty;
    the next enqueue starts a new one. The pending deque and the running
    flag are only touched under the queue's lock, so exactly one worker
    exists at any moment and messages are processed in arrival order.
    """

    def __init__(
        self,
        classifier: SMSClassifier,
        repository: MessageRepository,
        resource_monitor: Optional[ResourceMonitor] = None,
        event_bus: Optional[EventBus] = None,
        processing_timeout: float = 45.0,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
        inter_item_delay: float = 1.0,
    ):
        """
        Initialize processing queue.

        Args:
            classifier: Classifier used for every message
            repository: Where processed messages are written
            resource_monitor: Optional memory monitor consulted before each message
            event_bus: Optional bus for state and result events
            processing_timeout: Time budget per classify/explain call
            max_retries: Retries per message after the first attempt
            retry_backoff: Linear backoff unit between retries
            inter_item_delay: Pause between consecutive messages
        """
        self.classifier = classifier
        self.repository = repository
        self.resource_monitor = resource_monitor
        self.event_bus = event_bus
        self.processing_timeout = processing_timeout
        self.inter_item_delay = inter_item_delay
        self._retry_config = RetryConfig(max_retries=max_retries, backoff_seconds=retry_backoff)

        self._pending: Deque[SMSMessage] = deque()
        self._lock = asyncio.Lock()
        self._is_running = False
        self._worker_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._state = ProcessingState()

        self._stats = {
            "enqueued": 0,
            "processed": 0,
            "benign": 0,
            "smishing": 0,
            "unclassified": 0,
            "failed": 0,
            "loop_errors": 0,
            "workers_started": 0,
            "average_time_ms": 0.0,
        }

    @classmethod
    def from_settings(
        cls,
        settings,
        classifier: SMSClassifier,
        repository: MessageRepository,
        resource_monitor: Optional[ResourceMonitor] = None,
        event_bus: Optional[EventBus] = None,
    ) -> "ProcessingQueue":
        """Create queue from `SMSGuardSettings`."""
        queue = settings.queue
        return cls(
            classifier=classifier,
            repository=repository,
            resource_monitor=resource_monitor,
            event_bus=event_bus,
            processing_timeout=queue.processing_timeout_seconds,
            max_retries=queue.max_retries,
            retry_backoff=queue.retry_backoff_seconds,
            inter_item_delay=queue.inter_item_delay_seconds,
        )

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Attach to the running loop and start memory monitoring."""
        self._loop = asyncio.get_running_loop()
        if self.resource_monitor is not None:
            await self.resource_monitor.start_monitoring()
        logger.info("Processing queue started")

    async def stop(self) -> None:
        """Cancel the worker and stop memory monitoring."""
        task = self._worker_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self.resource_monitor is not None:
            await self.resource_monitor.stop_monitoring()

        logger.info(f"Processing queue stopped ({len(self._pending)} pending)")

    async def enqueue(self, message: SMSMessage) -> None:
        """
        Add a message to the queue and make sure a worker is draining it.

        Args:
            message: Message to classify
        """
        async with self._lock:
            self._loop = asyncio.get_running_loop()
            self._pending.append(message)
            self._stats["enqueued"] += 1
            self._idle.clear()

            self._state = ProcessingState(
                is_processing=self._state.is_processing,
                current_message=self._state.current_message,
                queue_size=len(self._pending),
                error=self._state.error,
            )
            state = self._state

            if not self._is_running:
                self._is_running = True
                self._stats["workers_started"] += 1
                self._worker_task = asyncio.create_task(self._worker_loop())

        logger.info(f"Added SMS to processing queue: {message.id} (queue size: {state.queue_size})")
        await self._publish(state)

    def submit_threadsafe(self, message: SMSMessage) -> concurrent.futures.Future:
        """
        Enqueue from a thread other than the queue's event loop.

        Returns:
            Future that completes once the message is queued

        Raises:
            RuntimeError: If the queue has not been started on a loop
        """
        if self._loop is None:
            raise RuntimeError("Processing queue is not attached to an event loop")
        return asyncio.run_coroutine_threadsafe(self.enqueue(message), self._loop)

    async def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the queue drains.

        Returns:
            True if idle, False on timeout
        """
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def _worker_loop(self) -> None:
        """Drain the queue one message at a time."""
        logger.info("Processing loop started")
        try:
            while True:
                async with self._lock:
                    if not self._pending:
                        self._is_running = False
                        self._state = ProcessingState(is_processing=False, queue_size=0)
                        self._idle.set()
                        state = self._state
                        message = None
                    else:
                        message = self._pending.popleft()
                        self._state = ProcessingState(
                            is_processing=True,
                            current_message=message,
                            queue_size=len(self._pending),
                        )
                        state = self._state

                await self._publish(state)
                if message is None:
                    logger.info("Queue empty, processing loop finished")
                    return

                await self._process_message(message)

                if self._pending and self.inter_item_delay > 0:
                    await asyncio.sleep(self.inter_item_delay)

        except asyncio.CancelledError:
            self._is_running = False
            if not self._pending:
                self._idle.set()
            raise
        except Exception as e:
            logger.error(f"Error in processing loop: {e!r}")
            self._stats["loop_errors"] += 1
            async with self._lock:
                self._is_running = False
                self._state = ProcessingState(
                    is_processing=False,
                    queue_size=len(self._pending),
                    error=str(e),
                )
                if self._pending:
                    # Messages still waiting; hand them to a fresh worker
                    self._is_running = True
                    self._stats["workers_started"] += 1
                    self._worker_task = asyncio.create_task(self._worker_loop())
                else:
                    self._idle.set()
                state = self._state
            await self._publish(state)

    async def _process_message(self, message: SMSMessage) -> None:
        """Classify one message and persist the result."""
        logger.info(f"Processing SMS {message.id} from {message.sender}: \"{message.preview()}\"")
        start_time = time.perf_counter()

        if self.resource_monitor is not None and self.resource_monitor.is_pressured():
            await self.resource_monitor.relieve()
            if self.resource_monitor.is_pressured():
                logger.warning("Memory still high after optimization, continuing")

        try:
            classification, explanation = await retry_async(
                self._classify_with_timeout,
                message,
                config=self._retry_config,
                operation=f"processing SMS {message.id}",
            )
        except Exception as e:
            logger.error(f"Max retries reached for SMS {message.id}, marking UNCLASSIFIED: {e!r}")
            self._stats["failed"] += 1
            classification, explanation = Classification.UNCLASSIFIED, None

        processed = message.with_result(classification, explanation)
        await self.repository.update_message(processed)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._record(classification, elapsed_ms)
        logger.info(f"Successfully processed SMS {message.id}: {classification.name}")

        if self.event_bus is not None:
            await self.event_bus.emit(
                MessageClassifiedEvent(
                    source="processing_queue",
                    message_id=processed.id,
                    sender=processed.sender,
                    classification=classification.value,
                    explanation=explanation,
                    processing_time_ms=elapsed_ms,
                )
            )

    async def _classify_with_timeout(
        self, message: SMSMessage
    ) -> Tuple[Classification, Optional[str]]:
        classification = await asyncio.wait_for(
            self.classifier.classify_sms(message.body),
            timeout=self.processing_timeout,
        )

        explanation = None
        if classification is Classification.SMISHING:
            explanation = await asyncio.wait_for(
                self.classifier.get_explanation(message),
                timeout=self.processing_timeout,
            )
        return classification, explanation

    def _record(self, classification: Classification, elapsed_ms: float) -> None:
        self._stats["processed"] += 1
        self._stats[classification.value] = self._stats.get(classification.value, 0) + 1

        total = self._stats["processed"]
        current_avg = self._stats["average_time_ms"]
        self._stats["average_time_ms"] = (current_avg * (total - 1) + elapsed_ms) / total

    async def _publish(self, state: ProcessingState) -> None:
        if self.event_bus is None:
            return
        message = state.current_message
        await self.event_bus.emit(
            QueueStateChangedEvent(
                source="processing_queue",
                is_processing=state.is_processing,
                current_message_id=message.id if message else None,
                current_message_sender=message.sender if message else None,
                queue_size=state.queue_size,
                error=state.error,
            )
        )

    def get_processing_status(self) -> str:
        """Human-readable queue status."""
        state = self._state
        if state.is_processing and state.current_message is not None:
            return (
                f"Processing SMS from {state.current_message.sender} "
                f"({state.queue_size} in queue)"
            )
        return f"Idle ({state.queue_size} in queue)"

    def get_statistics(self) -> Dict[str, Any]:
        """Get queue statistics."""
        return {
            **self._stats,
            "queued": len(self._pending),
            "is_running": self._is_running,
            "state": self._state.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"ProcessingQueue(pending={len(self._pending)}, "
            f"running={self._is_running})"
        )
