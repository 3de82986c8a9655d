"""
Retrieval-augmented SMS classifier using a local LLM (llama-cpp-python).

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
import functools
import gc
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loguru import logger

from smsguard.config.settings import ClassifierSettings, ModelSettings
from smsguard.core.assets import ModelAsset
from smsguard.core.base.classifier import Classification, SMSClassifier, SMSMessage
from smsguard.core.exceptions import InferenceError, InferenceTimeoutError, ModelNotReadyError
from smsguard.core.retry import RetryConfig, retry_async
from smsguard.processors.text.embedder import Embedder
from smsguard.processors.text.prompt_builder import PromptBuilder
from smsguard.processors.text.vector_index import VectorIndex
from smsguard.utils.logging import preview

EXPLANATION_NOT_READY = "Unable to generate explanation - model not ready"
EXPLANATION_EMPTY = "Unable to generate explanation"
EXPLANATION_ERROR = "Unable to generate explanation due to an error"

ModelLoader = Callable[[Path, ModelSettings], Any]


class ClassifierState(Enum):
    """Lifecycle state of the generative classifier."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    BUSY = "busy"


def load_llama_model(model_path: Path, settings: ModelSettings) -> Any:
    """
    Load a GGUF model with llama-cpp-python.

    Args:
        model_path: Path to the model file
        settings: Model settings

    Returns:
        Loaded `llama_cpp.Llama` instance
    """
    from llama_cpp import Llama

    logger.info(f"Loading generative model: {model_path.name}")
    return Llama(
        model_path=str(model_path),
        n_ctx=settings.context_length,
        n_threads=settings.n_threads,
        verbose=False,
    )


def parse_classification(response: Optional[str]) -> Classification:
    """
    Map a model response to a classification.

    "SMISHING" wins over "BENIGN" when both appear; neither means
    UNCLASSIFIED.
    """
    if not response:
        return Classification.UNCLASSIFIED

    upper = response.upper()
    if "SMISHING" in upper:
        return Classification.SMISHING
    if "BENIGN" in upper:
        return Classification.BENIGN
    return Classification.UNCLASSIFIED


def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class LLMClassifier(SMSClassifier):
    """
    SMS classifier backed by a local generative model.

    Features:
    - Embedding-based retrieval of similar benign/smishing examples
    - Grounded prompt with fallback to an example-free prompt
    - Per-call timeouts on a dedicated inference thread pool
    - Bounded retries with linear backoff
    - UNCLASSIFIED as the uniform failure result
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        prompt_builder: PromptBuilder,
        model_asset: ModelAsset,
        classifier_settings: Optional[ClassifierSettings] = None,
        model_settings: Optional[ModelSettings] = None,
        model_loader: Optional[ModelLoader] = None,
    ):
        """
        Initialize classifier.

        Args:
            embedder: Embedding model wrapper
            vector_index: Reference example index
            prompt_builder: Prompt builder
            model_asset: Location of the generative model
            classifier_settings: Timeout, retry and truncation policy
            model_settings: Generation parameters
            model_loader: Callable that loads the model from a path
        """
        self.embedder = embedder
        self.vector_index = vector_index
        self.prompt_builder = prompt_builder
        self.model_asset = model_asset
        self.settings = classifier_settings or ClassifierSettings()
        self.model_settings = model_settings or ModelSettings()
        self._model_loader = model_loader or load_llama_model

        self._retry_config = RetryConfig(
            max_retries=self.settings.max_retries,
            backoff_seconds=self.settings.retry_backoff_seconds,
        )

        self._model = None
        self._initialized = False
        self._active_calls = 0
        self._executor: Optional[ThreadPoolExecutor] = None
        self._model_executor: Optional[ThreadPoolExecutor] = None
        self._model_lock = threading.Lock()
        self._init_lock = asyncio.Lock()

        self._stats = {
            "classifications": 0,
            "attempts": 0,
            "timeouts": 0,
            "fallback_prompts": 0,
            "unclassified": 0,
            "explanations": 0,
        }

    @classmethod
    def from_settings(
        cls,
        settings,
        embedder: Embedder,
        vector_index: VectorIndex,
        prompt_builder: PromptBuilder,
        model_loader: Optional[ModelLoader] = None,
    ) -> "LLMClassifier":
        """Create classifier from `SMSGuardSettings`."""
        models = settings.models
        asset = ModelAsset(
            filename=models.llm_model_file,
            models_dir=models.models_dir,
            assets_dir=models.assets_dir,
            override_path=models.llm_override_path,
        )
        return cls(
            embedder=embedder,
            vector_index=vector_index,
            prompt_builder=prompt_builder,
            model_asset=asset,
            classifier_settings=settings.classifier,
            model_settings=models,
            model_loader=model_loader,
        )

    @property
    def state(self) -> ClassifierState:
        if not self.is_model_ready():
            return ClassifierState.UNINITIALIZED
        if self._active_calls > 0:
            return ClassifierState.BUSY
        return ClassifierState.READY

    def is_model_ready(self) -> bool:
        return self._initialized and self._model is not None

    async def initialize(self) -> bool:
        """
        Initialize dependent services, then load the generative model.

        Returns:
            True if every dependency and the model loaded
        """
        async with self._init_lock:
            if self.is_model_ready():
                return True

            logger.info("Initializing SMS classifier...")
            loop = asyncio.get_running_loop()
            executor = self._get_executor()

            try:
                embedder_ok = await loop.run_in_executor(executor, self.embedder.initialize)
                index_ok = await loop.run_in_executor(executor, self.vector_index.load)
                prompt_ok = self.prompt_builder.initialize()

                if not (embedder_ok and index_ok and prompt_ok):
                    logger.error(
                        "Failed to initialize required services "
                        f"(embedder={embedder_ok}, index={index_ok}, prompt={prompt_ok})"
                    )
                    return False

                if self.embedder.dimension != self.vector_index.dimension:
                    logger.error(
                        f"Embedding dimension {self.embedder.dimension} does not match "
                        f"reference dimension {self.vector_index.dimension}"
                    )
                    return False

                model_path = self.model_asset.resolve()
                logger.debug(f"Using model path: {model_path}")
                self._model = await loop.run_in_executor(
                    executor, self._model_loader, model_path, self.model_settings
                )
                self._initialized = self._model is not None

            except Exception as e:
                logger.error(f"Failed to initialize SMS classifier: {e}")
                self._model = None
                self._initialized = False
                return False

            if self._initialized:
                logger.info("SMS classifier initialized successfully")
            return self._initialized

    async def classify_sms(self, text: str) -> Classification:
        """
        Classify an SMS body.

        Args:
            text: Message body

        Returns:
            BENIGN, SMISHING, or UNCLASSIFIED on any failure
        """
        self._stats["classifications"] += 1

        if not self.is_model_ready():
            logger.warning("Model not ready, initializing...")
            if not await self.initialize():
                logger.error("Failed to initialize model, returning UNCLASSIFIED")
                self._stats["unclassified"] += 1
                return Classification.UNCLASSIFIED

        if len(text) > self.settings.max_sms_input_length:
            logger.warning(
                f"Message too long ({len(text)} chars), "
                f"truncating to {self.settings.max_sms_input_length}"
            )
        truncated = truncate(text, self.settings.max_sms_input_length)

        self._active_calls += 1
        try:
            classification = await retry_async(
                self._classify_once,
                truncated,
                config=self._retry_config,
                operation="SMS classification",
            )
        except Exception as e:
            logger.error(f"Classification failed after retries, returning UNCLASSIFIED: {e!r}")
            classification = Classification.UNCLASSIFIED
        finally:
            self._active_calls -= 1

        if classification is Classification.UNCLASSIFIED:
            self._stats["unclassified"] += 1

        logger.info(f"Classification result: {classification.name}")
        return classification

    async def _classify_once(self, text: str) -> Classification:
        """Single embed → retrieve → compose → infer attempt."""
        self._stats["attempts"] += 1
        timeout = self.settings.timeout_seconds

        embedding = await self._run_blocking(
            self.embedder.embed, text, timeout=timeout, operation="Embedding"
        )

        if embedding is None:
            logger.warning("Failed to generate embedding, using fallback prompt")
            self._stats["fallback_prompts"] += 1
            prompt = self.prompt_builder.build_fallback_prompt(text)
        else:
            benign, smishing = await self._run_blocking(
                self.vector_index.find_similar_examples,
                embedding,
                timeout=timeout,
                operation="Semantic search",
            )
            prompt = self.prompt_builder.build_prompt(text, benign, smishing)

            if len(prompt) > self.settings.max_prompt_length:
                logger.warning(f"Prompt too long ({len(prompt)} chars), truncating")
                prompt = truncate(prompt, self.settings.max_prompt_length)

        logger.debug(f"Starting LLM inference ({len(prompt)} chars, timeout {timeout}s)")
        response = await self._run_blocking(
            self._generate,
            prompt,
            timeout=timeout,
            operation="LLM inference",
            executor=self._get_model_executor(),
        )
        logger.debug(f"Raw LLM response: \"{preview(response, 200)}\"")

        return parse_classification(response)

    async def get_explanation(self, message: SMSMessage) -> str:
        """
        Explain why a message looks like smishing.

        Args:
            message: The classified message

        Returns:
            Explanation, or a fixed fallback string on any failure
        """
        if not self.is_model_ready():
            return EXPLANATION_NOT_READY

        self._stats["explanations"] += 1
        self._active_calls += 1
        try:
            body = truncate(message.body, self.settings.max_sms_input_length)
            prompt = self.prompt_builder.build_explanation_prompt(message.sender, body)
            response = await self._run_blocking(
                self._generate,
                prompt,
                timeout=self.settings.timeout_seconds,
                operation="Explanation",
                executor=self._get_model_executor(),
            )
        except Exception as e:
            logger.error(f"Error generating explanation: {e!r}")
            return EXPLANATION_ERROR
        finally:
            self._active_calls -= 1

        if not response or not response.strip():
            return EXPLANATION_EMPTY
        return response.strip()

    async def _run_blocking(
        self,
        func: Callable[..., Any],
        *args: Any,
        timeout: float,
        operation: str,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> Any:
        """
        Run a blocking call on the inference pool under a timeout.

        A timed-out call is abandoned; its thread runs to completion. Calls
        that touch the model go through the single-worker model executor, so
        an abandoned generation finishes before the next one starts.

        Raises:
            InferenceTimeoutError: If the call exceeds the timeout
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            executor or self._get_executor(), functools.partial(func, *args)
        )
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as e:
            self._stats["timeouts"] += 1
            raise InferenceTimeoutError(
                f"{operation} timed out after {timeout}s", timeout_seconds=timeout
            ) from e

    def _generate(self, prompt: str) -> str:
        """Blocking text generation. Holds the model lock for the whole call."""
        with self._model_lock:
            model = self._model
            if model is None:
                raise ModelNotReadyError("Generative model is not loaded")

            response = model(
                prompt,
                max_tokens=self.model_settings.max_tokens,
                temperature=self.model_settings.temperature,
                top_k=self.model_settings.top_k,
                echo=False,
            )

        try:
            return response["choices"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise InferenceError(f"Unexpected model response: {response!r}") from e

    def _close_model(self, model: Any) -> None:
        with self._model_lock:
            try:
                model.close()
            except Exception as e:
                logger.warning(f"Error closing model: {e}")

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.settings.inference_workers,
                thread_name_prefix="smsguard-inference",
            )
        return self._executor

    def _get_model_executor(self) -> ThreadPoolExecutor:
        if self._model_executor is None:
            self._model_executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="smsguard-generate",
            )
        return self._model_executor

    async def cleanup(self) -> None:
        """Release the model, the embedder and the inference pools."""
        logger.info("Cleaning up SMS classifier...")

        model = self._model
        self._model = None
        self._initialized = False

        if self._model_executor is not None:
            self._model_executor.shutdown(wait=False, cancel_futures=True)
            self._model_executor = None

        # Waits for a generation still running on an abandoned thread
        if model is not None and hasattr(model, "close"):
            await asyncio.get_running_loop().run_in_executor(None, self._close_model, model)

        self.embedder.cleanup()

        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        gc.collect()
        logger.info("SMS classifier cleanup complete")

    def get_stats(self) -> Dict[str, Any]:
        """Get usage statistics."""
        return {
            **self._stats,
            "state": self.state.value,
            "model": self.model_asset.filename,
        }
