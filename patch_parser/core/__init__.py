"""Core infrastructure shared by the extraction components."""

from .cache import CacheEntry, CacheKeyGenerator, ExtractionCache
from .exceptions import (
    ConfigurationError,
    DocumentError,
    PatchParserError,
    SelectorError,
    StreamError,
    UnknownTaskKindError,
    ValidationError,
)
from .logging import configure_logging, get_class_logger, get_logger
from .metrics import MetricsRecorder, MetricsSnapshot

__all__ = [
    "CacheEntry",
    "CacheKeyGenerator",
    "ConfigurationError",
    "DocumentError",
    "ExtractionCache",
    "MetricsRecorder",
    "MetricsSnapshot",
    "PatchParserError",
    "SelectorError",
    "StreamError",
    "UnknownTaskKindError",
    "ValidationError",
    "configure_logging",
    "get_class_logger",
    "get_logger",
]
