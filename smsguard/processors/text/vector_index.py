"""
In-memory vector index over labeled reference SMS embeddings.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger
from pydantic import ValidationError

from smsguard.core.exceptions import ReferenceDataError
from smsguard.processors.text.types import (
    EmbeddingsFile,
    Label,
    ReferenceExample,
    SimilarityMatch,
)
from smsguard.utils.logging import preview

VectorLike = Union[np.ndarray, Sequence[float]]


def cosine_similarity(vector_a: VectorLike, vector_b: VectorLike) -> float:
    """
    Calculate cosine similarity between two vectors.

    Accumulates in float64 regardless of input precision. Returns 0.0 for
    mismatched dimensions or zero-magnitude vectors.

    Args:
        vector_a: First vector
        vector_b: Second vector

    Returns:
        Similarity in [-1, 1]
    """
    a = np.asarray(vector_a, dtype=np.float64).ravel()
    b = np.asarray(vector_b, dtype=np.float64).ravel()

    if a.shape != b.shape:
        logger.warning(f"Vector dimensions don't match: {a.size} vs {b.size}")
        return 0.0

    denominator = float(np.linalg.norm(a) * np.linalg.norm(b))
    if not denominator > 0:
        return 0.0

    return float(np.dot(a, b) / denominator)


class VectorIndex:
    """
    Top-K cosine similarity search over two fixed reference sets.

    Features:
    - One reference set per label, loaded once from JSON
    - Float64 scoring over float32 storage
    - Stable ranking (ties keep file order)
    - Degrades to an empty set on missing or malformed files
    """

    def __init__(
        self,
        benign_path: Path,
        smishing_path: Path,
        dimension: int = 384,
        examples_per_class: int = 2,
    ):
        """
        Initialize vector index.

        Args:
            benign_path: Reference file for benign examples
            smishing_path: Reference file for smishing examples
            dimension: Expected embedding dimension
            examples_per_class: Default K for find_similar_examples
        """
        self.paths = {
            Label.BENIGN: Path(benign_path),
            Label.SMISHING: Path(smishing_path),
        }
        self.dimension = dimension
        self.examples_per_class = examples_per_class

        self._examples: Dict[Label, List[ReferenceExample]] = {
            label: [] for label in Label
        }
        self._matrices: Dict[Label, np.ndarray] = {
            label: np.empty((0, dimension), dtype=np.float32) for label in Label
        }
        self._loaded = False

    @classmethod
    def from_settings(cls, settings) -> "VectorIndex":
        """Create index from `SMSGuardSettings`."""
        retrieval = settings.retrieval
        return cls(
            benign_path=retrieval.benign_embeddings_file,
            smishing_path=retrieval.smishing_embeddings_file,
            dimension=retrieval.embedding_dimension,
            examples_per_class=retrieval.examples_per_class,
        )

    def load(self) -> bool:
        """
        Load both reference sets.

        A class whose file is missing or malformed ends up empty; the
        load itself does not fail.

        Returns:
            True once both files have been attempted
        """
        logger.info("Loading reference embeddings...")

        for label, path in self.paths.items():
            try:
                examples = self._load_file(path, label)
            except ReferenceDataError as e:
                logger.error(f"Error loading {label.value} embeddings from {path}: {e.message}")
                examples = []
            self._set_examples(label, examples)

        self._loaded = True
        logger.info(
            f"Vector index ready. Loaded {self.size(Label.BENIGN)} benign and "
            f"{self.size(Label.SMISHING)} smishing embeddings"
        )
        return True

    def is_ready(self) -> bool:
        """Check if reference sets have been loaded."""
        return self._loaded

    def size(self, label: Label) -> int:
        """Number of reference examples for a label."""
        return len(self._examples[label])

    def examples(self, label: Label) -> Tuple[ReferenceExample, ...]:
        """Read-only view of a label's reference set."""
        return tuple(self._examples[label])

    def search(self, query: VectorLike, k: int, label: Label) -> List[ReferenceExample]:
        """
        Find the k reference examples most similar to the query.

        Args:
            query: Query embedding
            k: Maximum number of results
            label: Reference set to search

        Returns:
            Up to k examples ordered by descending similarity
        """
        return [match.example for match in self.search_with_scores(query, k, label)]

    def search_with_scores(
        self, query: VectorLike, k: int, label: Label
    ) -> List[SimilarityMatch]:
        """
        Find the k most similar reference examples with their scores.

        Args:
            query: Query embedding
            k: Maximum number of results
            label: Reference set to search

        Returns:
            Up to k matches ordered by descending similarity
        """
        examples = self._examples[label]
        if k <= 0 or not examples:
            return []

        scores = self._score(np.asarray(query, dtype=np.float64).ravel(), label)

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [SimilarityMatch(example=examples[i], similarity=float(scores[i])) for i in order]

    def find_similar_examples(
        self, query: VectorLike, k: Optional[int] = None
    ) -> Tuple[List[ReferenceExample], List[ReferenceExample]]:
        """
        Find similar examples of both classes.

        Args:
            query: Query embedding
            k: Examples per class (defaults to examples_per_class)

        Returns:
            Tuple of (benign examples, smishing examples)
        """
        k = self.examples_per_class if k is None else k

        if not self._loaded:
            logger.warning("Vector index not loaded")
            return [], []

        benign = self.search_with_scores(query, k, Label.BENIGN)
        smishing = self.search_with_scores(query, k, Label.SMISHING)

        logger.debug(f"Found {len(benign)} benign and {len(smishing)} smishing examples")
        for match in benign + smishing:
            logger.debug(
                f"  {match.example.label.value} ({match.similarity:.3f}): "
                f"\"{preview(match.example.text)}\""
            )

        return [m.example for m in benign], [m.example for m in smishing]

    def _score(self, query: np.ndarray, label: Label) -> np.ndarray:
        """Cosine similarity of the query against every example of a label."""
        matrix = self._matrices[label].astype(np.float64)

        if query.shape[0] != matrix.shape[1]:
            logger.warning(
                f"Vector dimensions don't match: {query.shape[0]} vs {matrix.shape[1]}"
            )
            return np.zeros(matrix.shape[0], dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query

        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, dots / norms, 0.0)

        return np.nan_to_num(scores, nan=0.0)

    def _set_examples(self, label: Label, examples: List[ReferenceExample]) -> None:
        self._examples[label] = examples
        if examples:
            # Rows of the wrong length are zeroed so they always score 0.0
            matrix = np.vstack(
                [
                    ex.embedding
                    if ex.embedding.shape[0] == self.dimension
                    else np.zeros(self.dimension, dtype=np.float32)
                    for ex in examples
                ]
            ).astype(np.float32)
        else:
            matrix = np.empty((0, self.dimension), dtype=np.float32)
        matrix.setflags(write=False)
        self._matrices[label] = matrix

    def _load_file(self, path: Path, label: Label) -> List[ReferenceExample]:
        """
        Read one reference file.

        Args:
            path: JSON file path
            label: Label assigned to every entry

        Returns:
            Parsed reference examples

        Raises:
            ReferenceDataError: If the file is missing, malformed, or declares
                a dimension different from the index
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            data = EmbeddingsFile.model_validate(raw)
        except FileNotFoundError as e:
            raise ReferenceDataError(f"File not found: {path}") from e
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ReferenceDataError(f"Malformed reference file: {e}") from e

        if data.embedding_dimension != self.dimension:
            raise ReferenceDataError(
                f"Declared dimension {data.embedding_dimension} does not match "
                f"index dimension {self.dimension}",
                details={"path": str(path)},
            )

        if data.class_name.lower() != label.value:
            logger.warning(
                f"Reference file {path} declares class '{data.class_name}', "
                f"loading as '{label.value}'"
            )

        if data.total_embeddings and data.total_embeddings != len(data.embeddings):
            logger.warning(
                f"{path} declares {data.total_embeddings} embeddings "
                f"but contains {len(data.embeddings)}"
            )

        examples = []
        for index, vector in enumerate(data.embeddings):
            if len(vector) != data.embedding_dimension:
                logger.warning(
                    f"{label.value} entry {index} has dimension {len(vector)} "
                    f"!= {data.embedding_dimension}, it will score 0.0"
                )

            example_id = data.ids[index] if index < len(data.ids) else None
            text = data.texts[index] if index < len(data.texts) else None

            embedding = np.asarray(vector, dtype=np.float32)
            embedding.setflags(write=False)

            examples.append(
                ReferenceExample(
                    id=example_id if example_id is not None else f"id_{index}",
                    text=text if text is not None else "",
                    label=label,
                    embedding=embedding,
                )
            )

        return examples

    def __repr__(self) -> str:
        return (
            f"VectorIndex(dimension={self.dimension}, "
            f"benign={self.size(Label.BENIGN)}, smishing={self.size(Label.SMISHING)})"
        )
