"""
Dependency injection container for SMSGuard.

Wires the classifier, queue, storage and receiver together so that
no component reaches for a global.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class Container:
    """
    Dependency injection container.

    Features:
    - Pre-built instances and cached (singleton) factories
    - Transient factories
    - Automatic resolution of annotated factory parameters
    """

    def __init__(self):
        """Initialize container."""
        self._factories: dict[type, tuple[Callable, bool]] = {}
        self._instances: dict[type, Any] = {}

    def register_instance(self, interface: type[T], instance: T) -> None:
        """
        Register a pre-created instance.

        Args:
            interface: Interface type
            instance: Instance returned for every resolve
        """
        self._instances[interface] = instance
        logger.debug(f"Registered instance: {interface.__name__}")

    def register_factory(
        self,
        interface: type[T],
        factory: Callable[..., T],
        singleton: bool = True,
    ) -> None:
        """
        Register a factory function.

        Args:
            interface: Interface type
            factory: Factory whose annotated parameters are resolved
                from the container
            singleton: Cache the first instance created
        """
        self._factories[interface] = (factory, singleton)
        logger.debug(f"Registered factory for: {interface.__name__}")

    def resolve(self, interface: type[T]) -> T:
        """
        Resolve an instance of the interface.

        Raises:
            ValueError: If interface not registered
        """
        if interface in self._instances:
            return self._instances[interface]

        if interface in self._factories:
            factory, singleton = self._factories[interface]
            instance = self._invoke_with_dependencies(factory)
            if singleton:
                self._instances[interface] = instance
            return instance

        raise ValueError(f"No registration found for: {interface.__name__}")

    def _invoke_with_dependencies(self, func: Callable) -> Any:
        sig = inspect.signature(func)

        kwargs = {}
        for param_name, param in sig.parameters.items():
            if param.annotation is inspect.Parameter.empty:
                continue
            try:
                kwargs[param_name] = self.resolve(param.annotation)
            except ValueError:
                if param.default is inspect.Parameter.empty:
                    raise
                kwargs[param_name] = param.default

        return func(**kwargs)


@dataclass
class SMSGuardApp:
    """Fully wired application components."""

    settings: Any
    event_bus: Any
    repository: Any
    classifier: Any
    resource_monitor: Any
    queue: Any
    receiver: Any

    async def start(self, initialize_classifier: bool = True) -> bool:
        """
        Start the queue and optionally warm up the classifier.

        Returns:
            True if the classifier is ready (or warm-up was skipped)
        """
        await self.queue.start()
        if not initialize_classifier:
            return True
        ready = await self.classifier.initialize()
        if not ready:
            logger.warning("Classifier failed to initialize; messages will be UNCLASSIFIED")
        return ready

    async def stop(self) -> None:
        await self.queue.stop()
        await self.classifier.cleanup()


def configure_container(
    settings=None,
    model_loader: Optional[Callable] = None,
    session_factory: Optional[Callable] = None,
) -> Container:
    """
    Configure container with the default SMSGuard components.

    Args:
        settings: Settings (defaults to `get_settings()`)
        model_loader: Override for the generative model loader
        session_factory: Override for the ONNX session factory

    Returns:
        Configured container
    """
    from smsguard.config import SMSGuardSettings, get_settings
    from smsguard.core.assets import ModelAsset
    from smsguard.core.base.classifier import SMSClassifier
    from smsguard.core.resource_manager import ResourceMonitor
    from smsguard.events import EventBus
    from smsguard.interfaces.storage import MessageRepository
    from smsguard.pipelines.processing_queue import ProcessingQueue
    from smsguard.processors.text import Embedder, LLMClassifier, PromptBuilder, VectorIndex
    from smsguard.receiver import SMSReceiver
    from smsguard.storage import InMemoryMessageRepository

    container = Container()
    container.register_instance(SMSGuardSettings, settings or get_settings())
    container.register_instance(EventBus, EventBus())
    container.register_factory(MessageRepository, InMemoryMessageRepository)

    def make_embedder(settings: SMSGuardSettings) -> Embedder:
        asset = ModelAsset(
            filename=settings.models.embedding_model_file,
            models_dir=settings.models.models_dir,
            assets_dir=settings.models.assets_dir,
        )
        return Embedder(
            asset,
            dimension=settings.retrieval.embedding_dimension,
            max_sequence_length=settings.retrieval.max_sequence_length,
            session_factory=session_factory,
        )

    def make_classifier(
        settings: SMSGuardSettings,
        embedder: Embedder,
        index: VectorIndex,
        prompt_builder: PromptBuilder,
    ) -> SMSClassifier:
        return LLMClassifier.from_settings(
            settings, embedder, index, prompt_builder, model_loader=model_loader
        )

    def make_queue(
        settings: SMSGuardSettings,
        classifier: SMSClassifier,
        repository: MessageRepository,
        monitor: ResourceMonitor,
        event_bus: EventBus,
    ) -> ProcessingQueue:
        return ProcessingQueue.from_settings(
            settings, classifier, repository, resource_monitor=monitor, event_bus=event_bus
        )

    def make_receiver(repository: MessageRepository, queue: ProcessingQueue) -> SMSReceiver:
        return SMSReceiver(repository, queue)

    def make_index(settings: SMSGuardSettings) -> VectorIndex:
        return VectorIndex.from_settings(settings)

    def make_prompt_builder(settings: SMSGuardSettings) -> PromptBuilder:
        return PromptBuilder.from_settings(settings)

    def make_monitor(settings: SMSGuardSettings) -> ResourceMonitor:
        return ResourceMonitor.from_settings(settings)

    container.register_factory(Embedder, make_embedder)
    container.register_factory(VectorIndex, make_index)
    container.register_factory(PromptBuilder, make_prompt_builder)
    container.register_factory(ResourceMonitor, make_monitor)
    container.register_factory(SMSClassifier, make_classifier)
    container.register_factory(ProcessingQueue, make_queue)
    container.register_factory(SMSReceiver, make_receiver)

    return container


def build_application(
    settings=None,
    model_loader: Optional[Callable] = None,
    session_factory: Optional[Callable] = None,
    classifier=None,
) -> SMSGuardApp:
    """
    Build the application from settings.

    Args:
        settings: Settings (defaults to `get_settings()`)
        model_loader: Override for the generative model loader
        session_factory: Override for the ONNX session factory
        classifier: Pre-built classifier used instead of the LLM classifier

    Returns:
        Wired application
    """
    from smsguard.config import SMSGuardSettings
    from smsguard.core.base.classifier import SMSClassifier
    from smsguard.core.resource_manager import ResourceMonitor
    from smsguard.events import EventBus
    from smsguard.interfaces.storage import MessageRepository
    from smsguard.pipelines.processing_queue import ProcessingQueue
    from smsguard.receiver import SMSReceiver

    container = configure_container(settings, model_loader, session_factory)
    if classifier is not None:
        container.register_instance(SMSClassifier, classifier)

    return SMSGuardApp(
        settings=container.resolve(SMSGuardSettings),
        event_bus=container.resolve(EventBus),
        repository=container.resolve(MessageRepository),
        classifier=container.resolve(SMSClassifier),
        resource_monitor=container.resolve(ResourceMonitor),
        queue=container.resolve(ProcessingQueue),
        receiver=container.resolve(SMSReceiver),
    )
