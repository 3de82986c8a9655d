"""
Sentence embedding generation with ONNX Runtime.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from pathlib import Path
from typing import Any, Callable, Optional, Union

import numpy as np
import onnxruntime as ort
from loguru import logger

from smsguard.core.assets import ModelAsset
from smsguard.utils.logging import preview

SessionFactory = Callable[[Path], Any]


def create_onnx_session(model_path: Path, num_threads: int = 2) -> ort.InferenceSession:
    """
    Open an ONNX Runtime session for the embedding model.

    Args:
        model_path: Path to the .onnx file
        num_threads: Intra-op threads (kept low to limit memory)

    Returns:
        Inference session
    """
    options = ort.SessionOptions()
    options.intra_op_num_threads = num_threads
    options.inter_op_num_threads = 1
    return ort.InferenceSession(
        str(model_path),
        sess_options=options,
        providers=["CPUExecutionProvider"],
    )


class Embedder:
    """
    Turns SMS text into fixed-length embedding vectors.

    The deployed model consumes the message's Unicode code points in a
    fixed-length tensor and emits one vector per message (or one per
    position, which is mean-pooled).
    """

    def __init__(
        self,
        model: Union[ModelAsset, Path],
        dimension: int = 384,
        max_sequence_length: int = 128,
        session_factory: Optional[SessionFactory] = None,
    ):
        """
        Initialize embedder.

        Args:
            model: Embedding model asset or local path
            dimension: Expected output dimension
            max_sequence_length: Input length used when the model's
                input shape is dynamic
            session_factory: Callable that opens a session for a path
        """
        self.asset = model if isinstance(model, ModelAsset) else ModelAsset.at(model)
        self.dimension = dimension
        self.max_sequence_length = max_sequence_length
        self._session_factory = session_factory or create_onnx_session

        self._session = None
        self._input_name: Optional[str] = None
        self._input_dtype = np.float32
        self._sequence_length = max_sequence_length
        self._initialized = False

    def initialize(self) -> bool:
        """
        Load the embedding model.

        Returns:
            True if the model loaded and its output width matches the
            configured dimension
        """
        try:
            logger.info("Initializing embedding model...")

            model_path = self.asset.resolve()
            session = self._session_factory(model_path)
            model_input = session.get_inputs()[0]
            model_output = session.get_outputs()[0]

            output_width = model_output.shape[-1] if model_output.shape else None
            if isinstance(output_width, int) and output_width != self.dimension:
                logger.error(
                    f"Embedding model outputs {output_width} dimensions, "
                    f"expected {self.dimension}"
                )
                self._initialized = False
                return False

            sequence_length = model_input.shape[-1] if model_input.shape else None
            self._sequence_length = (
                sequence_length if isinstance(sequence_length, int) else self.max_sequence_length
            )
            self._input_name = model_input.name
            self._input_dtype = np.int64 if "int64" in str(model_input.type) else np.float32
            self._session = session
            self._initialized = True

            logger.info(
                f"Embedding model initialized (input length {self._sequence_length}, "
                f"dimension {self.dimension})"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to initialize embedding model: {e}")
            self._session = None
            self._initialized = False
            return False

    def is_model_ready(self) -> bool:
        """Check if the model is ready."""
        return self._initialized and self._session is not None

    def embed(self, text: str) -> Optional[np.ndarray]:
        """
        Generate embedding for a given text.

        Args:
            text: Input text

        Returns:
            Float32 vector, or None if the model is not ready or
            produced no output
        """
        if not self.is_model_ready():
            logger.warning("Embedding model not initialized")
            return None

        try:
            logger.debug(f"Generating embedding for text ({len(text)} chars): \"{preview(text)}\"")

            inputs = self._encode(text)
            outputs = self._session.run(None, {self._input_name: inputs})

            if not outputs:
                logger.error("Embedding model returned no outputs")
                return None

            embedding = np.asarray(outputs[0], dtype=np.float32)
            if embedding.ndim == 3:
                # Token-level output: mean-pool over the sequence axis
                embedding = embedding.mean(axis=1)
            embedding = embedding.reshape(-1)

            if embedding.size == 0:
                logger.error("Embedding model returned an empty vector")
                return None

            logger.debug(f"Embedding generated successfully ({embedding.size} dimensions)")
            return embedding

        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            return None

    def _encode(self, text: str) -> np.ndarray:
        """Write code points into a zero-padded (1, sequence_length) tensor."""
        codes = [ord(char) for char in text[: self._sequence_length]]
        inputs = np.zeros((1, self._sequence_length), dtype=self._input_dtype)
        if codes:
            inputs[0, : len(codes)] = codes
        return inputs

    def cleanup(self) -> None:
        """Release the inference session."""
        self._session = None
        self._initialized = False
        logger.debug("Embedding model released")

    def __repr__(self) -> str:
        return (
            f"Embedder(model='{self.asset.filename}', dimension={self.dimension}, "
            f"ready={self.is_model_ready()})"
        )
