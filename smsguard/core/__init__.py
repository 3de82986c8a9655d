"""
Core components for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.core.base import Classification, SMSClassifier, SMSMessage
from smsguard.core.resource_manager import ResourceMonitor

__all__ = [
    "Classification",
    "SMSClassifier",
    "SMSMessage",
    "ResourceMonitor",
]
