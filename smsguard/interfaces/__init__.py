"""
Interfaces for SMSGuard's pluggable components.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.interfaces.storage import MessageListener, MessageRepository

__all__ = ["MessageListener", "MessageRepository"]
