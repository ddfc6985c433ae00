"""Tests for configuration loading and logging setup."""

import logging

import pytest
from pydantic import ValidationError as PydanticValidationError
from rich.logging import RichHandler

from patch_parser import ParserSettings
from patch_parser.core.logging import (
    configure_logging,
    get_class_logger,
    resolve_log_level,
)


def test_defaults():
    settings = ParserSettings()

    assert settings.cache_ttl_seconds == 300.0
    assert settings.max_selector_attempts == 10
    assert settings.max_concurrent_tasks == 4
    assert settings.stream_chunk_size == 65536
    assert settings.url_topic_keywords == ["patch"]
    assert settings.image_topic_keywords == ["patch", "news"]
    assert settings.title_label_template == "パッチノート {version}"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PATCH_PARSER_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("PATCH_PARSER_ENABLE_FALLBACK_SEARCH", "false")
    monkeypatch.setenv("PATCH_PARSER_URL_TOPIC_KEYWORDS", '["Patch", "Notes"]')
    monkeypatch.setenv("PATCH_PARSER_LOG_LEVEL", "DEBUG")

    settings = ParserSettings()

    assert settings.cache_ttl_seconds == 60.0
    assert settings.enable_fallback_search is False
    assert settings.url_topic_keywords == ["patch", "notes"]
    assert settings.log_level == "debug"


def test_base_origin_is_normalized():
    settings = ParserSettings(base_origin="https://example.com/")
    assert settings.base_origin == "https://example.com"


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_origin": "example.com"},
        {"default_scheme": "ftp"},
        {"url_topic_keywords": ["  "]},
        {"title_label_template": "Patch notes"},
        {"log_level": "verbose"},
        {"cache_ttl_seconds": 0},
        {"max_concurrent_tasks": 0},
        {"max_selector_attempts": 0},
    ],
)
def test_invalid_settings(overrides):
    with pytest.raises(PydanticValidationError):
        ParserSettings(**overrides)


def test_resolve_log_level():
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(logging.WARNING) == logging.WARNING
    with pytest.raises(ValueError):
        resolve_log_level("chatty")


def test_configure_logging_installs_rich_handler():
    root = logging.getLogger()
    previous = root.handlers[:], root.level
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        assert any(isinstance(handler, RichHandler) for handler in root.handlers)

        configure_logging(logging.WARNING, use_rich=False)
        assert root.level == logging.WARNING
        assert not any(isinstance(handler, RichHandler) for handler in root.handlers)
    finally:
        root.handlers, root.level = previous


def test_configure_logging_defaults_to_settings(monkeypatch):
    root = logging.getLogger()
    previous = root.handlers[:], root.level
    try:
        configure_logging(settings=ParserSettings(log_level="warning"))
        assert root.level == logging.WARNING

        configure_logging(settings=ParserSettings(log_level="error", debug=True))
        assert root.level == logging.DEBUG

        monkeypatch.setattr(
            "patch_parser.settings._settings", ParserSettings(log_level="critical")
        )
        configure_logging(use_rich=False)
        assert root.level == logging.CRITICAL
    finally:
        root.handlers, root.level = previous


def test_class_logger_name(engine):
    assert get_class_logger(engine).name == "patch_parser.engine.ExtractionEngine"
