"""
Text processing for SMS classification.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.processors.text.embedder import Embedder
from smsguard.processors.text.llm_classifier import ClassifierState, LLMClassifier
from smsguard.processors.text.prompt_builder import PromptBuilder
from smsguard.processors.text.types import Label, ReferenceExample, SimilarityMatch
from smsguard.processors.text.vector_index import VectorIndex, cosine_similarity

__all__ = [
    "ClassifierState",
    "Embedder",
    "Label",
    "LLMClassifier",
    "PromptBuilder",
    "ReferenceExample",
    "SimilarityMatch",
    "VectorIndex",
    "cosine_similarity",
]
