"""Extraction engine configuration loaded from the environment."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from patch_parser.constants import (
    # Cache
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_FINGERPRINT_LENGTH,
    # URLs
    DEFAULT_BASE_ORIGIN,
    DEFAULT_IMAGE_TOPIC_KEYWORDS,
    # Concurrency
    DEFAULT_MAX_CONCURRENT_TASKS,
    # Selector resolution
    DEFAULT_MAX_SELECTOR_ATTEMPTS,
    # Streaming
    DEFAULT_STREAM_CHUNK_SIZE,
    DEFAULT_TITLE_LABEL_TEMPLATE,
    DEFAULT_URL_SCHEME,
    DEFAULT_URL_TOPIC_KEYWORDS,
    MAX_CONCURRENT_TASKS,
    MAX_FINGERPRINT_LENGTH,
    MIN_CONCURRENT_TASKS,
    MIN_FINGERPRINT_LENGTH,
    # Enums
    LogLevel,
)


class ParserSettings(BaseSettings):
    """Configuration for the extraction engine."""

    # Cache Settings
    enable_caching: bool = True
    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, gt=0)
    fingerprint_length: int = Field(
        default=DEFAULT_FINGERPRINT_LENGTH,
        ge=MIN_FINGERPRINT_LENGTH,
        le=MAX_FINGERPRINT_LENGTH,
    )

    # Selector Resolution Settings
    max_selector_attempts: int = Field(default=DEFAULT_MAX_SELECTOR_ATTEMPTS, ge=1)
    enable_fallback_search: bool = True
    enable_metrics: bool = True

    # Streaming & Concurrency Settings
    stream_chunk_size: int = Field(default=DEFAULT_STREAM_CHUNK_SIZE, ge=1)
    max_concurrent_tasks: int = Field(
        default=DEFAULT_MAX_CONCURRENT_TASKS,
        ge=MIN_CONCURRENT_TASKS,
        le=MAX_CONCURRENT_TASKS,
    )

    # URL & Field Settings
    base_origin: str = DEFAULT_BASE_ORIGIN
    default_scheme: str = DEFAULT_URL_SCHEME
    url_topic_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_URL_TOPIC_KEYWORDS)
    )
    image_topic_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IMAGE_TOPIC_KEYWORDS)
    )
    title_label_template: str = DEFAULT_TITLE_LABEL_TEMPLATE

    # Logging Settings
    log_level: str = LogLevel.INFO.value
    debug: bool = False

    model_config = SettingsConfigDict(
        env_prefix="PATCH_PARSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("base_origin")
    @classmethod
    def validate_base_origin(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_origin must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("default_scheme")
    @classmethod
    def validate_default_scheme(cls, v: str) -> str:
        v_lower = v.lower().rstrip(":")
        if v_lower not in ("http", "https"):
            raise ValueError("default_scheme must be 'http' or 'https'")
        return v_lower

    @field_validator("url_topic_keywords", "image_topic_keywords")
    @classmethod
    def validate_keywords(cls, v: list[str]) -> list[str]:
        keywords = [keyword.strip().lower() for keyword in v if keyword.strip()]
        if not keywords:
            raise ValueError("topic keyword lists must not be empty")
        return keywords

    @field_validator("title_label_template")
    @classmethod
    def validate_title_label_template(cls, v: str) -> str:
        if "{version}" not in v:
            raise ValueError("title_label_template must contain '{version}'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = [level.value for level in LogLevel]
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_lower


# Singleton with lazy loading to prevent eager env reads at import time
_settings: ParserSettings | None = None


def get_settings() -> ParserSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ParserSettings()
    return _settings
