"""
Base SMS classifier abstract class and message model.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from smsguard.core.exceptions import InvalidTransitionError
from smsguard.utils.logging import preview


class Classification(Enum):
    """Classification state of an SMS message."""

    PENDING = "pending"
    BENIGN = "benign"
    SMISHING = "smishing"
    UNCLASSIFIED = "unclassified"

    @property
    def is_terminal(self) -> bool:
        """Whether processing has finished for this state."""
        return self is not Classification.PENDING


@dataclass(frozen=True)
class SMSMessage:
    """An inbound text message and its classification."""

    id: str
    sender: str
    body: str
    timestamp: int  # arrival time, epoch milliseconds
    classification: Classification = Classification.PENDING
    is_processed: bool = False
    explanation: Optional[str] = None

    def with_result(
        self,
        classification: Classification,
        explanation: Optional[str] = None,
    ) -> "SMSMessage":
        """
        Return the processed copy of this message.

        Args:
            classification: Terminal classification
            explanation: Explanation text (smishing only)

        Returns:
            New message with is_processed set

        Raises:
            InvalidTransitionError: If the target is PENDING or this
                message already holds a different terminal classification
        """
        if not classification.is_terminal:
            raise InvalidTransitionError(
                f"Cannot finish message {self.id} as {classification.name}"
            )
        # Terminal states are final
        if self.classification.is_terminal and self.classification is not classification:
            raise InvalidTransitionError(
                f"Message {self.id} is already {self.classification.name}",
                details={"requested": classification.name},
            )
        return replace(
            self,
            classification=classification,
            is_processed=True,
            explanation=explanation or None,
        )

    def preview(self, limit: int = 100) -> str:
        """Body preview for log output."""
        return preview(self.body, limit)

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary for serialization."""
        return {
            "id": self.id,
            "sender": self.sender,
            "body": self.body,
            "timestamp": self.timestamp,
            "classification": self.classification.value,
            "is_processed": self.is_processed,
            "explanation": self.explanation,
        }


class SMSClassifier(ABC):
    """Abstract base class for SMS classifiers."""

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Load models and dependent services.

        Returns:
            True if initialization was successful
        """
        pass

    @abstractmethod
    def is_model_ready(self) -> bool:
        """
        Check if the model is ready for inference.

        Returns:
            True if model is loaded and ready
        """
        pass

    @abstractmethod
    async def classify_sms(self, text: str) -> Classification:
        """
        Classify an SMS body as BENIGN or SMISHING.

        Args:
            text: The SMS text to classify

        Returns:
            Terminal classification; UNCLASSIFIED when no verdict
            could be obtained
        """
        pass

    @abstractmethod
    async def get_explanation(self, message: SMSMessage) -> str:
        """
        Explain why a message was classified as smishing.

        Args:
            message: The SMS message to explain

        Returns:
            Explanation text
        """
        pass

    async def cleanup(self) -> None:
        """Release models and worker threads."""
        pass

    def __repr__(self) -> str:
        """String representation of classifier."""
        return f"{self.__class__.__name__}(ready={self.is_model_ready()})"
