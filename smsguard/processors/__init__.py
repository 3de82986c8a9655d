"""
Message processors for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""
