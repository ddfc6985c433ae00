"""
Configuration constants for the patch parser.

This module centralizes default values, pattern tables, and string enumerations
used by the extraction engine and its configuration layer.
"""

from enum import Enum
from typing import Final

# =============================================================================
# CACHE CONSTANTS
# =============================================================================

# Entry lifetime (in seconds)
DEFAULT_CACHE_TTL_SECONDS: Final[float] = 300.0

# Hex characters kept from the SHA-256 document digest
DEFAULT_FINGERPRINT_LENGTH: Final[int] = 16
MIN_FINGERPRINT_LENGTH: Final[int] = 8
MAX_FINGERPRINT_LENGTH: Final[int] = 64

# =============================================================================
# SELECTOR RESOLUTION CONSTANTS
# =============================================================================

DEFAULT_MAX_SELECTOR_ATTEMPTS: Final[int] = 10

# Label used when a field was recovered from the container's own text
CONTAINER_TEXT_SELECTOR: Final[str] = "container-text"
CONTAINER_HREF_SELECTOR: Final[str] = "container-href"

# =============================================================================
# STREAMING & CONCURRENCY CONSTANTS
# =============================================================================

DEFAULT_STREAM_CHUNK_SIZE: Final[int] = 65536  # 64 KiB
DEFAULT_MAX_CONCURRENT_TASKS: Final[int] = 4
MIN_CONCURRENT_TASKS: Final[int] = 1
MAX_CONCURRENT_TASKS: Final[int] = 64

# =============================================================================
# URL CONSTANTS
# =============================================================================

DEFAULT_BASE_ORIGIN: Final[str] = "https://www.leagueoflegends.com"
DEFAULT_URL_SCHEME: Final[str] = "https"
DEFAULT_URL_TOPIC_KEYWORDS: Final[tuple[str, ...]] = ("patch",)
DEFAULT_IMAGE_TOPIC_KEYWORDS: Final[tuple[str, ...]] = ("patch", "news")

# =============================================================================
# TITLE & VERSION PATTERNS
# =============================================================================

DEFAULT_TITLE_LABEL_TEMPLATE: Final[str] = "パッチノート {version}"

_VERSION_TOKEN: Final[str] = r"(\d+\.\d+(?:\.\d+)?)"

# Ordered by priority; the first pattern that matches wins
PATCH_TITLE_PATTERNS: Final[tuple[str, ...]] = (
    rf"パッチノート\s*{_VERSION_TOKEN}",
    rf"パッチ\s*{_VERSION_TOKEN}",
    rf"patch\s*notes?\s*{_VERSION_TOKEN}",
    rf"patch\s*{_VERSION_TOKEN}",
    rf"アップデート\s*{_VERSION_TOKEN}",
    rf"update\s*{_VERSION_TOKEN}",
)

VERSION_PATTERNS: Final[tuple[str, ...]] = (
    r"(\d+\.\d+\.\d+)",
    r"(\d+\.\d+)",
    r"v(\d+\.\d+\.\d+)",
    r"v(\d+\.\d+)",
    r"バージョン\s*(\d+\.\d+)",
    r"version\s*(\d+\.\d+)",
)

SYNTHETIC_VERSION_FORMAT: Final[str] = "%Y.%m.%d"

# =============================================================================
# PATTERN MATCHING CONSTANTS
# =============================================================================

CONFIDENCE_BASE: Final[float] = 0.5
CONFIDENCE_ID_BONUS: Final[float] = 0.3
CONFIDENCE_CLASS_BONUS: Final[float] = 0.2
CONFIDENCE_TEXT_BONUS: Final[float] = 0.1
CONFIDENCE_CAP: Final[float] = 1.0

# Pixel-like offsets used to approximate an element's position in the tree
POSITION_SIBLING_STEP: Final[int] = 10
POSITION_DEPTH_STEP: Final[int] = 20

# =============================================================================
# CONTENT ANALYSIS CONSTANTS
# =============================================================================

DEFAULT_KEYWORD_LIMIT: Final[int] = 10
MIN_KEYWORD_LENGTH: Final[int] = 4
CJK_LANGUAGE_THRESHOLD: Final[float] = 0.1

# Flesch reading ease coefficients
READABILITY_BASE: Final[float] = 206.835
READABILITY_SENTENCE_WEIGHT: Final[float] = 1.015
READABILITY_SYLLABLE_WEIGHT: Final[float] = 84.6

HEADING_SELECTOR: Final[str] = "h1, h2, h3, h4, h5, h6"
TOPIC_HEADING_SELECTOR: Final[str] = "h1, h2, h3"

TITLE_META_SELECTORS: Final[tuple[str, ...]] = (
    'meta[property="og:title"]',
    'meta[name="twitter:title"]',
)
DESCRIPTION_META_SELECTORS: Final[tuple[str, ...]] = (
    'meta[name="description"]',
    'meta[property="og:description"]',
)
AUTHOR_SELECTORS: Final[tuple[str, ...]] = (
    'meta[name="author"]',
    '[rel="author"]',
    ".author",
    ".byline",
)
PUBLISH_DATE_SELECTORS: Final[tuple[str, ...]] = (
    'meta[property="article:published_time"]',
    'meta[name="publish_date"]',
    "time[datetime]",
    ".publish-date",
    ".date",
)

SECTION_SELECTOR: Final[str] = 'section, article, div[role="main"]'
ENTITY_SELECTOR: Final[str] = "[data-entity], .entity, .person, .organization"
UNNAMED_SECTION: Final[str] = "unnamed"

# =============================================================================
# IMAGE VALIDATION CONSTANTS
# =============================================================================

IMAGE_ALLOWED_PROTOCOLS: Final[tuple[str, ...]] = ("http", "https", "data")
IMAGE_ALLOWED_FORMATS: Final[tuple[str, ...]] = (
    "jpg",
    "jpeg",
    "png",
    "gif",
    "webp",
    "svg",
    "bmp",
    "ico",
)
IMAGE_MIN_DATA_URL_LENGTH: Final[int] = 100
IMAGE_MIN_BASE64_LENGTH: Final[int] = 10
IMAGE_MAX_URL_LENGTH: Final[int] = 2000

# =============================================================================
# ENUMS
# =============================================================================


class TaskKind(str, Enum):
    """Kinds of work the task scheduler can dispatch."""

    EXTRACT = "extract"
    SEARCH = "search"
    ANALYZE = "analyze"


class LogLevel(str, Enum):
    """Logging levels."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


class OperationName(str, Enum):
    """Operation names used as cache key prefixes and metric buckets."""

    RESOLVE = "resolve"
    TITLE = "title"
    URL = "url"
    IMAGE = "image"
    VERSION = "version"
    PATTERNS = "patterns"
    TASK = "task"
    STREAM_CHUNK = "stream_chunk"
    ANALYZE = "analyze"
