"""
SMSGuard - On-device smishing detection for incoming SMS.

Classifies text messages as benign or smishing with a local generative
model, grounded by similar labeled examples retrieved from an embedding
index.

Author: Yobie Benjamin
Date: 2026-10-19
"""

__version__ = "0.1.0"
__author__ = "Yobie Benjamin"
__license__ = "Apache-2.0"

from smsguard.core.base import Classification, SMSClassifier, SMSMessage

__all__ = [
    "Classification",
    "SMSClassifier",
    "SMSMessage",
    "__version__",
]
