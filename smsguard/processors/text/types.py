"""
Type definitions for retrieval-augmented SMS classification.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class Label(Enum):
    """Class of a labeled reference example."""

    BENIGN = "benign"
    SMISHING = "smishing"


@dataclass(frozen=True, eq=False)
class ReferenceExample:
    """Labeled reference message with its precomputed embedding."""

    id: str
    text: str
    label: Label
    embedding: np.ndarray  # float32, read-only

    @property
    def dimension(self) -> int:
        return int(self.embedding.shape[0])


@dataclass(frozen=True)
class SimilarityMatch:
    """Reference example scored against one query vector."""

    example: ReferenceExample
    similarity: float


class EmbeddingsFile(BaseModel):
    """Schema of a reference embeddings JSON file."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    class_name: str = Field(alias="class")
    model_name: str = ""
    embedding_dimension: int
    total_embeddings: int = 0
    embeddings: List[List[float]]
    texts: List[Optional[str]] = Field(default_factory=list)
    ids: List[Optional[str]] = Field(default_factory=list)
