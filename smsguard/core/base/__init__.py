"""
Base classes for SMSGuard classifiers.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.core.base.classifier import Classification, SMSClassifier, SMSMessage

__all__ = ["Classification", "SMSClassifier", "SMSMessage"]
