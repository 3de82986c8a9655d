"""
Shared fixtures for SMSGuard tests.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import asyncio
import json
import threading
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
import pytest

from smsguard.config import (
    ClassifierSettings,
    MemorySettings,
    ModelSettings,
    QueueSettings,
    RetrievalSettings,
    SMSGuardSettings,
)
from smsguard.core.assets import ModelAsset
from smsguard.core.base.classifier import Classification, SMSClassifier, SMSMessage
from smsguard.processors.text import Embedder, LLMClassifier, PromptBuilder, VectorIndex

DIM = 8


def bag_of_chars(text: str, dimension: int = DIM) -> np.ndarray:
    """Deterministic embedding: character counts bucketed by code point."""
    vector = np.zeros(dimension, dtype=np.float32)
    for char in text:
        vector[ord(char) % dimension] += 1
    return vector


def write_embeddings(
    path: Path,
    class_name: str,
    vectors: Sequence[Sequence[float]],
    texts: Optional[List[Optional[str]]] = None,
    ids: Optional[List[Optional[str]]] = None,
    dimension: int = DIM,
) -> Path:
    """Write a reference embeddings file."""
    data = {
        "class": class_name,
        "model_name": "test-embedder",
        "embedding_dimension": dimension,
        "total_embeddings": len(vectors),
        "embeddings": [list(map(float, v)) for v in vectors],
        "texts": texts if texts is not None else [f"{class_name} text {i}" for i in range(len(vectors))],
        "ids": ids if ids is not None else [f"{class_name}_{i}" for i in range(len(vectors))],
    }
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class FakeOnnxSession:
    """Stands in for an onnxruntime InferenceSession."""

    def __init__(
        self,
        dimension: int = DIM,
        sequence_length: Union[int, str] = 16,
        token_output: bool = False,
        fail: bool = False,
        empty: bool = False,
    ):
        self.dimension = dimension
        self.sequence_length = sequence_length
        self.token_output = token_output
        self.fail = fail
        self.empty = empty
        self.calls: List[np.ndarray] = []

    def get_inputs(self):
        return [
            SimpleNamespace(
                name="input_ids",
                shape=[1, self.sequence_length],
                type="tensor(int64)",
            )
        ]

    def get_outputs(self):
        if self.token_output:
            shape = [1, self.sequence_length, self.dimension]
        else:
            shape = [1, self.dimension]
        return [SimpleNamespace(name="embeddings", shape=shape, type="tensor(float)")]

    def run(self, output_names, feeds):
        inputs = feeds["input_ids"]
        self.calls.append(inputs)
        if self.fail:
            raise RuntimeError("onnx failure")
        if self.empty:
            return []

        text = "".join(chr(int(c)) for c in inputs[0] if c)
        vector = bag_of_chars(text, self.dimension)
        if self.token_output:
            length = inputs.shape[1]
            return [np.tile(vector, (1, length, 1))]
        return [vector.reshape(1, -1)]


class FakeLlama:
    """Callable with the llama_cpp.Llama completion interface."""

    def __init__(
        self,
        response: Union[str, Callable[[str], str]] = "BENIGN",
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        self.response = response
        self.delay = delay
        self.error = error
        self.prompts: List[str] = []
        self.kwargs: dict = {}
        self.closed = False
        self.closed_while_active = False
        self.active = 0
        self.max_active = 0
        self._counter_lock = threading.Lock()

    def __call__(self, prompt: str, **kwargs):
        with self._counter_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.prompts.append(prompt)
            self.kwargs = kwargs
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            text = self.response(prompt) if callable(self.response) else self.response
            return {"choices": [{"text": text}]}
        finally:
            with self._counter_lock:
                self.active -= 1

    def close(self):
        self.closed_while_active = self.active > 0
        self.closed = True


class FakeClassifier(SMSClassifier):
    """
    Keyword classifier for queue tests.

    Bodies starting with "SMISH" are smishing, "UNSURE" unclassified,
    everything else benign.
    """

    def __init__(self, delay: float = 0.0, failures: int = 0, explanation: str = "Suspicious link"):
        self.delay = delay
        self.failures_left = failures
        self.explanation = explanation
        self.calls: List[str] = []
        self.explained: List[str] = []
        self.active = 0
        self.max_active = 0
        self.ready = False
        self.cleaned_up = False

    async def initialize(self) -> bool:
        self.ready = True
        return True

    def is_model_ready(self) -> bool:
        return self.ready

    async def classify_sms(self, text: str) -> Classification:
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.failures_left > 0:
                self.failures_left -= 1
                raise RuntimeError("transient failure")
            if text.upper().startswith("SMISH"):
                return Classification.SMISHING
            if text.upper().startswith("UNSURE"):
                return Classification.UNCLASSIFIED
            return Classification.BENIGN
        finally:
            self.active -= 1

    async def get_explanation(self, message: SMSMessage) -> str:
        self.explained.append(message.id)
        return self.explanation

    async def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture
def reference_files(tmp_path):
    """Benign and smishing reference files built from bag-of-chars vectors."""
    benign_texts = ["see you at lunch", "call mom tonight", "meeting moved to 3pm"]
    smishing_texts = ["verify your bank account now", "claim your prize at http://x.example"]

    benign = write_embeddings(
        tmp_path / "benign_embeddings.json",
        "benign",
        [bag_of_chars(t) for t in benign_texts],
        texts=benign_texts,
    )
    smishing = write_embeddings(
        tmp_path / "smishing_embeddings.json",
        "smishing",
        [bag_of_chars(t) for t in smishing_texts],
        texts=smishing_texts,
    )
    return benign, smishing


@pytest.fixture
def model_files(tmp_path):
    """Placeholder model files on disk."""
    models_dir = tmp_path / "models"
    models_dir.mkdir()
    onnx = models_dir / "embedder.onnx"
    gguf = models_dir / "model.gguf"
    onnx.write_bytes(b"onnx")
    gguf.write_bytes(b"gguf")
    return SimpleNamespace(models_dir=models_dir, onnx=onnx, gguf=gguf)


@pytest.fixture
def make_classifier(reference_files, model_files):
    """Factory for an LLMClassifier wired to fakes."""

    def _make(
        llama: Optional[FakeLlama] = None,
        session: Optional[FakeOnnxSession] = None,
        timeout: float = 2.0,
        max_retries: int = 2,
        backoff: float = 0.01,
        benign_path: Optional[Path] = None,
        smishing_path: Optional[Path] = None,
        style: str = "lean",
        model_path: Optional[Path] = None,
    ) -> LLMClassifier:
        session = session or FakeOnnxSession()
        llama = llama or FakeLlama()

        embedder = Embedder(
            ModelAsset.at(model_files.onnx),
            dimension=DIM,
            session_factory=lambda path: session,
        )
        index = VectorIndex(
            benign_path or reference_files[0],
            smishing_path or reference_files[1],
            dimension=DIM,
            examples_per_class=2,
        )
        builder = PromptBuilder(style=style, max_examples_per_class=1)

        return LLMClassifier(
            embedder,
            index,
            builder,
            ModelAsset.at(model_path or model_files.gguf),
            classifier_settings=ClassifierSettings(
                timeout_seconds=timeout,
                max_retries=max_retries,
                retry_backoff_seconds=backoff,
                inference_workers=4,
            ),
            model_loader=lambda path, settings: llama,
        )

    return _make


@pytest.fixture
def fake_classifier():
    """Factory for keyword classifiers."""
    return FakeClassifier


@pytest.fixture
def fake_llama():
    """Factory for fake generative models."""
    return FakeLlama


@pytest.fixture
def fake_session():
    """Factory for fake ONNX sessions."""
    return FakeOnnxSession


@pytest.fixture
def test_settings(tmp_path, reference_files, model_files):
    """Settings with tiny timeouts pointing at temporary files."""
    return SMSGuardSettings(
        environment="test",
        models=ModelSettings(
            models_dir=model_files.models_dir,
            assets_dir=tmp_path / "assets",
            llm_model_file=model_files.gguf.name,
            embedding_model_file=model_files.onnx.name,
        ),
        retrieval=RetrievalSettings(
            benign_embeddings_file=reference_files[0],
            smishing_embeddings_file=reference_files[1],
            embedding_dimension=DIM,
            max_sequence_length=16,
        ),
        classifier=ClassifierSettings(
            timeout_seconds=2.0,
            max_retries=1,
            retry_backoff_seconds=0.01,
        ),
        queue=QueueSettings(
            processing_timeout_seconds=5.0,
            max_retries=1,
            retry_backoff_seconds=0.01,
            inter_item_delay_seconds=0.0,
        ),
        memory=MemorySettings(enable_monitoring=False),
    )


@pytest.fixture
def embed_text():
    """Bag-of-chars embedding function matching FakeOnnxSession."""
    return bag_of_chars


@pytest.fixture
def write_reference():
    """Writer for reference embeddings files."""
    return write_embeddings
