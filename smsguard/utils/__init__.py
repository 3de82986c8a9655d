"""
Utility modules for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.utils.logging import configure_from_settings, configure_logging, preview

__all__ = ["configure_logging", "configure_from_settings", "preview"]
