"""
Resource monitoring for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.core.resource_manager.monitor import MemorySample, ResourceMonitor

__all__ = ["MemorySample", "ResourceMonitor"]
