"""
patch_parser - structured extraction of patch-note fields from HTML.
"""

from .constants import TaskKind
from .core.exceptions import (
    ConfigurationError,
    DocumentError,
    PatchParserError,
    SelectorError,
    StreamError,
    UnknownTaskKindError,
    ValidationError,
)
from .document import HtmlDocument, SearchScope
from .engine import ExtractionEngine, __version__
from .models import (
    ContentAnalysisOptions,
    ContentAnalysisResult,
    ExtractionOutcome,
    PatternMatch,
    PatternSpec,
    StreamOutcome,
    Task,
)
from .settings import ParserSettings, get_settings

__all__ = [
    "ConfigurationError",
    "ContentAnalysisOptions",
    "ContentAnalysisResult",
    "DocumentError",
    "ExtractionEngine",
    "ExtractionOutcome",
    "HtmlDocument",
    "ParserSettings",
    "PatchParserError",
    "PatternMatch",
    "PatternSpec",
    "SearchScope",
    "SelectorError",
    "StreamError",
    "StreamOutcome",
    "Task",
    "TaskKind",
    "UnknownTaskKindError",
    "ValidationError",
    "__version__",
    "get_settings",
]
