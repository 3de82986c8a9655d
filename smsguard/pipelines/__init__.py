"""
Processing pipelines for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.pipelines.processing_queue import ProcessingQueue, ProcessingState

__all__ = ["ProcessingQueue", "ProcessingState"]
