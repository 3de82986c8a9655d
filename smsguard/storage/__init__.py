"""
Storage backends for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.storage.memory import InMemoryMessageRepository

__all__ = ["InMemoryMessageRepository"]
