"""
Configuration management for the application.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    openai_api_key: Optional[str] = None

    # Model Configuration
    openai_llm_model: Optional[str] = "gpt-4.1-mini"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_base_url: Optional[str] = None

    # Categories (falls back to existing group titles when empty)
    categories: list[str] = Field(default_factory=list)
    # Per-hostname default description, folded into a tab's meta text
    domain_descriptions: dict[str, str] = Field(default_factory=dict)

    # Thresholds
    category_threshold: float = 0.6
    group_threshold: float = 0.7
    cluster_distance_threshold: float = 0.67
    label_max_attempts: int = 5

    # Timeouts (seconds)
    request_timeout: float = 20.0
    meta_text_timeout: float = 0.1

    # Host capabilities
    tab_groups_enabled: bool = True

    # Cache Configuration (in-memory when unset)
    cache_db_path: Optional[Path] = None

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
