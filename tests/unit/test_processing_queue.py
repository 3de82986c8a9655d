"""
Tests for the single-flight processing queue.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio

import pytest

from smsguard.core.base.classifier import Classification, SMSMessage
from smsguard.core.resource_manager import ResourceMonitor
from smsguard.events import EventBus, MessageClassifiedEvent, QueueStateChangedEvent
from smsguard.pipelines import ProcessingQueue, ProcessingState
from smsguard.storage import InMemoryMessageRepository


def make_message(body, sender="+15550001111", message_id=None):
    return SMSMessage(id=message_id or f"id-{body}", sender=sender, body=body, timestamp=0)


def make_queue(classifier, repository=None, **kwargs):
    options = dict(
        processing_timeout=1.0,
        max_retries=2,
        retry_backoff=0.01,
        inter_item_delay=0.0,
    )
    options.update(kwargs)
    return ProcessingQueue(classifier, repository if repository is not None else InMemoryMessageRepository(), **options)


class FlakyRepository(InMemoryMessageRepository):
    """Repository whose first update fails."""

    def __init__(self):
        super().__init__()
        self.failures_left = 1

    async def update_message(self, message):
        if self.failures_left:
            self.failures_left -= 1
            raise RuntimeError("disk full")
        await super().update_message(message)


class TestProcessingState:
    """Test the observable state snapshot."""

    def test_idle_state(self):
        assert ProcessingState().to_dict() == {
            "is_processing": False,
            "current_message_sender": None,
            "queue_size": 0,
            "error": None,
        }

    def test_processing_state(self):
        state = ProcessingState(
            is_processing=True, current_message=make_message("hi", sender="Alice"), queue_size=2
        )
        assert state.to_dict()["current_message_sender"] == "Alice"
        assert state.to_dict()["queue_size"] == 2


class TestProcessingQueue:
    """Test queue processing behavior."""

    @pytest.mark.asyncio
    async def test_processes_message(self, fake_classifier):
        classifier = fake_classifier()
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository)
        message = make_message("hello")
        await repository.add_message(message)

        await queue.enqueue(message)
        assert await queue.wait_until_idle(timeout=2)

        stored = await repository.get_message(message.id)
        assert stored.classification is Classification.BENIGN
        assert stored.is_processed
        assert stored.explanation is None
        assert not queue.is_running

    @pytest.mark.asyncio
    async def test_smishing_gets_explanation(self, fake_classifier):
        classifier = fake_classifier(explanation="Fake bank link")
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository)
        message = make_message("SMISH: verify your account")

        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=2)

        stored = await repository.get_message(message.id)
        assert stored.classification is Classification.SMISHING
        assert stored.explanation == "Fake bank link"
        assert classifier.explained == [message.id]

    @pytest.mark.asyncio
    async def test_rapid_enqueues_processed_in_order_one_at_a_time(self, fake_classifier):
        classifier = fake_classifier(delay=0.02)
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository)
        bodies = [f"message {i}" for i in range(5)]

        for body in bodies:
            await queue.enqueue(make_message(body))

        assert await queue.wait_until_idle(timeout=5)

        assert classifier.calls == bodies
        assert classifier.max_active == 1
        assert queue.get_statistics()["workers_started"] == 1

        messages = await repository.get_all_messages()
        assert len(messages) == 5
        assert all(m.is_processed for m in messages)

    @pytest.mark.asyncio
    async def test_concurrent_enqueues_start_single_worker(self, fake_classifier):
        classifier = fake_classifier(delay=0.01)
        queue = make_queue(classifier)

        await asyncio.gather(*(queue.enqueue(make_message(f"m{i}")) for i in range(5)))
        await queue.wait_until_idle(timeout=5)

        assert len(classifier.calls) == 5
        assert classifier.max_active == 1
        assert queue.get_statistics()["workers_started"] == 1

    @pytest.mark.asyncio
    async def test_restarts_after_drain(self, fake_classifier):
        classifier = fake_classifier()
        queue = make_queue(classifier)

        await queue.enqueue(make_message("first"))
        await queue.wait_until_idle(timeout=2)
        await queue.enqueue(make_message("second"))
        await queue.wait_until_idle(timeout=2)

        assert classifier.calls == ["first", "second"]
        assert queue.get_statistics()["workers_started"] == 2

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, fake_classifier):
        classifier = fake_classifier(failures=2)
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository, max_retries=2)
        message = make_message("hello")

        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=2)

        assert len(classifier.calls) == 3
        assert (await repository.get_message(message.id)).classification is Classification.BENIGN

    @pytest.mark.asyncio
    async def test_exhausted_retries_mark_unclassified(self, fake_classifier):
        classifier = fake_classifier(failures=10)
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository, max_retries=2)
        message = make_message("hello")

        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=2)

        stored = await repository.get_message(message.id)
        assert len(classifier.calls) == 3
        assert stored.classification is Classification.UNCLASSIFIED
        assert stored.is_processed
        assert queue.get_statistics()["failed"] == 1

    @pytest.mark.asyncio
    async def test_slow_classifier_times_out(self, fake_classifier):
        classifier = fake_classifier(delay=0.5)
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository, processing_timeout=0.05, max_retries=1)
        message = make_message("hello")

        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=3)

        stored = await repository.get_message(message.id)
        assert stored.classification is Classification.UNCLASSIFIED
        assert len(classifier.calls) == 2

    @pytest.mark.asyncio
    async def test_duplicate_id_processed_twice(self, fake_classifier):
        classifier = fake_classifier()
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository)
        message = make_message("hello", message_id="same")

        await queue.enqueue(message)
        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=2)

        messages = await repository.get_all_messages()
        assert len(classifier.calls) == 2
        assert len(messages) == 1
        assert messages[0].is_processed
        assert messages[0].classification is Classification.BENIGN

    @pytest.mark.asyncio
    async def test_loop_error_is_recorded_and_loop_restarts(self, fake_classifier):
        classifier = fake_classifier()
        repository = FlakyRepository()
        queue = make_queue(classifier, repository)

        await queue.enqueue(make_message("first"))
        await queue.wait_until_idle(timeout=2)

        assert not queue.is_running
        assert queue.state.error == "disk full"
        assert queue.get_statistics()["loop_errors"] == 1

        second = make_message("second")
        await queue.enqueue(second)
        await queue.wait_until_idle(timeout=2)

        assert (await repository.get_message(second.id)).is_processed
        assert queue.state.error is None

    @pytest.mark.asyncio
    async def test_loop_error_with_pending_messages_keeps_draining(self, fake_classifier):
        classifier = fake_classifier()
        repository = FlakyRepository()
        queue = make_queue(classifier, repository)
        first = make_message("first")
        second = make_message("second")

        await queue.enqueue(first)
        await queue.enqueue(second)

        assert await queue.wait_until_idle(timeout=2)
        assert (await repository.get_message(second.id)).is_processed
        assert queue.get_processing_status() == "Idle (0 in queue)"

        stats = queue.get_statistics()
        assert stats["loop_errors"] == 1
        assert stats["workers_started"] == 2

    @pytest.mark.asyncio
    async def test_memory_pressure_triggers_relief(self, fake_classifier):
        monitor = ResourceMonitor(
            threshold_percent=80.0,
            relief_pause=0.0,
            probe=lambda: (90, 100),
        )
        classifier = fake_classifier()
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository, resource_monitor=monitor)
        message = make_message("hello")

        await queue.enqueue(message)
        await queue.wait_until_idle(timeout=2)

        assert monitor.get_statistics()["relief_count"] == 1
        assert (await repository.get_message(message.id)).is_processed


class TestQueueStatus:
    """Test status reporting and events."""

    @pytest.mark.asyncio
    async def test_status_strings(self, fake_classifier):
        classifier = fake_classifier(delay=0.2)
        queue = make_queue(classifier)

        assert queue.get_processing_status() == "Idle (0 in queue)"

        await queue.enqueue(make_message("one", sender="Alice"))
        await queue.enqueue(make_message("two", sender="Bob"))
        await asyncio.sleep(0.05)

        assert queue.get_processing_status() == "Processing SMS from Alice (1 in queue)"
        assert queue.state.to_dict()["current_message_sender"] == "Alice"

        await queue.wait_until_idle(timeout=3)
        assert queue.get_processing_status() == "Idle (0 in queue)"

    @pytest.mark.asyncio
    async def test_events(self, fake_classifier):
        bus = EventBus()
        states = []
        results = []

        async def on_state(event: QueueStateChangedEvent):
            states.append(event)

        async def on_result(event: MessageClassifiedEvent):
            results.append(event)

        bus.subscribe(QueueStateChangedEvent, on_state)
        bus.subscribe(MessageClassifiedEvent, on_result)

        queue = make_queue(fake_classifier(), event_bus=bus)
        await queue.enqueue(make_message("SMISH now", sender="Eve"))
        await queue.wait_until_idle(timeout=2)
        await asyncio.sleep(0.01)

        assert any(s.is_processing and s.current_message_sender == "Eve" for s in states)
        assert not states[-1].is_processing
        assert states[-1].queue_size == 0

        assert len(results) == 1
        assert results[0].classification == "smishing"
        assert results[0].explanation == "Suspicious link"

    @pytest.mark.asyncio
    async def test_submit_threadsafe(self, fake_classifier):
        classifier = fake_classifier()
        repository = InMemoryMessageRepository()
        queue = make_queue(classifier, repository)
        await queue.start()
        message = make_message("from another thread")

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: queue.submit_threadsafe(message).result(timeout=2))
        await queue.wait_until_idle(timeout=2)

        assert (await repository.get_message(message.id)).is_processed
        await queue.stop()

    def test_submit_threadsafe_requires_loop(self, fake_classifier):
        queue = make_queue(fake_classifier())
        with pytest.raises(RuntimeError):
            queue.submit_threadsafe(make_message("hello"))

    @pytest.mark.asyncio
    async def test_stop_cancels_worker(self, fake_classifier):
        queue = make_queue(fake_classifier(delay=1.0))
        await queue.start()
        await queue.enqueue(make_message("slow"))
        await asyncio.sleep(0.01)

        await queue.stop()

        assert not queue.is_running
