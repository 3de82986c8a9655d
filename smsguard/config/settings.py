"""
Pydantic-based configuration settings for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelSettings(BaseSettings):
    """Settings for the generative and embedding models."""

    models_dir: Path = Field(default_factory=lambda: Path.home() / ".smsguard" / "models")
    assets_dir: Path = Path("assets/models")
    llm_model_file: str = "gemma-3n-E2B-it-int4.gguf"
    embedding_model_file: str = "sms_embedding_model.onnx"
    llm_override_path: Optional[Path] = None
    context_length: int = Field(default=8192, ge=256)
    max_tokens: int = Field(default=1024, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    top_k: int = Field(default=32, ge=1)
    n_threads: int = Field(default=4, ge=1)


class RetrievalSettings(BaseSettings):
    """Settings for reference-example retrieval and prompt grounding."""

    benign_embeddings_file: Path = Path("assets/embeddings/benign_embeddings.json")
    smishing_embeddings_file: Path = Path("assets/embeddings/smishing_embeddings.json")
    prompt_template_file: Optional[Path] = None
    embedding_dimension: int = Field(default=384, ge=1)
    max_sequence_length: int = Field(default=128, ge=1)
    examples_per_class: int = Field(default=2, ge=0)
    prompt_examples_per_class: int = Field(default=1, ge=0)
    prompt_style: Literal["lean", "template"] = "lean"


class ClassifierSettings(BaseSettings):
    """Settings for the per-call classification policy."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    max_sms_input_length: int = Field(default=400, ge=1)
    max_prompt_length: int = Field(default=14000, ge=1)
    # Embedding and search pool; generation always runs on one dedicated thread
    inference_workers: int = Field(default=2, ge=1)


class QueueSettings(BaseSettings):
    """Settings for the background processing queue."""

    processing_timeout_seconds: float = Field(default=45.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    inter_item_delay_seconds: float = Field(default=1.0, ge=0)


class MemorySettings(BaseSettings):
    """Settings for memory pressure monitoring."""

    threshold_percent: float = Field(default=80.0, gt=0, le=100)
    check_interval_seconds: float = Field(default=10.0, gt=0)
    relief_pause_seconds: float = Field(default=0.1, ge=0)
    max_memory_mb: Optional[float] = Field(default=None, gt=0)
    enable_monitoring: bool = True


class ObservabilitySettings(BaseSettings):
    """Settings for logging."""

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[Path] = None
    log_rotation: str = "10 MB"
    log_retention: str = "7 days"


class SMSGuardSettings(BaseSettings):
    """
    Main configuration settings for SMSGuard.

    Configuration can be provided via:
    - Environment variables with SMSGUARD_ prefix (nested with "__",
      e.g. SMSGUARD_CLASSIFIER__TIMEOUT_SECONDS=20)
    - .env file in current directory
    - Direct instantiation with kwargs

    Example:
        ```python
        settings = SMSGuardSettings(
            classifier=ClassifierSettings(max_retries=1),
        )
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="SMSGUARD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False

    models: ModelSettings = Field(default_factory=ModelSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        """Accept upper-case environment names."""
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_prompt_examples(self) -> "SMSGuardSettings":
        """Prompt cannot render more examples than retrieval returns."""
        if self.retrieval.prompt_examples_per_class > self.retrieval.examples_per_class:
            raise ValueError(
                "prompt_examples_per_class cannot exceed examples_per_class"
            )
        return self

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "prod"

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return self.model_dump(mode="json")


@lru_cache
def get_settings(env_file: str | None = None) -> SMSGuardSettings:
    """
    Get cached settings instance.

    To reload settings, clear the cache with `get_settings.cache_clear()`.

    Args:
        env_file: Optional path to .env file

    Returns:
        Settings instance
    """
    if env_file:
        return SMSGuardSettings(_env_file=env_file)
    return SMSGuardSettings()


def load_settings_from_yaml(yaml_path: Path) -> SMSGuardSettings:
    """
    Load settings from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Settings instance
    """
    import yaml

    with open(yaml_path) as f:
        config_dict = yaml.safe_load(f) or {}

    return SMSGuardSettings(**config_dict)
