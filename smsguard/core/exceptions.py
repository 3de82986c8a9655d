"""
SMSGuard exceptions.

Author: Yobie Benjamin
Date: 2026-10-19
"""


class SMSGuardError(Exception):
    """Base exception for all SMSGuard errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelNotReadyError(SMSGuardError):
    """Raised when an inference call is made before the model is loaded."""
    pass


class InferenceTimeoutError(SMSGuardError):
    """Raised when an embedding or generation call exceeds its time budget."""

    def __init__(
        self,
        message: str,
        timeout_seconds: float | None = None,
        details: dict | None = None
    ):
        super().__init__(message, details)
        self.timeout_seconds = timeout_seconds


class InferenceError(SMSGuardError):
    """Raised when the generative model fails to produce a response."""
    pass


class ReferenceDataError(SMSGuardError):
    """Raised when a reference embeddings file is missing or malformed."""
    pass


class AssetNotFoundError(SMSGuardError):
    """Raised when a model asset cannot be located or copied."""
    pass


class InvalidTransitionError(SMSGuardError):
    """Raised when a message classification would move out of a terminal state."""
    pass
