"""
Configuration management for SMSGuard.

Uses Pydantic BaseSettings for type-safe, validated configuration
with support for environment variables, .env files, and YAML.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from smsguard.config.settings import (
    ClassifierSettings,
    MemorySettings,
    ModelSettings,
    ObservabilitySettings,
    QueueSettings,
    RetrievalSettings,
    SMSGuardSettings,
    get_settings,
    load_settings_from_yaml,
)

__all__ = [
    "SMSGuardSettings",
    "ModelSettings",
    "RetrievalSettings",
    "ClassifierSettings",
    "QueueSettings",
    "MemorySettings",
    "ObservabilitySettings",
    "get_settings",
    "load_settings_from_yaml",
]
