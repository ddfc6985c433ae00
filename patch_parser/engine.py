"""
ExtractionEngine: the public facade over the extraction components.

One engine owns one cache and one metrics recorder. Every call is
independent apart from its effect on those two.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from bs4 import Tag

from .core.cache import ExtractionCache
from .core.logging import get_class_logger
from .core.metrics import MetricsRecorder, MetricsSnapshot
from .core.validators import ImageUrlValidator
from .document import HtmlDocument, SearchScope
from .extraction import (
    ContentAnalyzer,
    ExtractionStream,
    FieldExtractor,
    PatternMatcher,
    SelectorResolver,
    StreamProcessor,
    TaskScheduler,
)
from .models import (
    ContentAnalysisOptions,
    ContentAnalysisResult,
    ExtractionOutcome,
    PatternSpec,
    Task,
)
from .settings import ParserSettings, get_settings

__version__ = "0.1.0"


class ExtractionEngine:
    """
    Turns parsed HTML into typed fields using selector chains.

    Usage:
        engine = ExtractionEngine()
        document = engine.load_document(html)
        card = document.select_one(".news-card")
        title = engine.extract_title(document, card, ["h2", ".title"])
        if title.success:
            version = engine.extract_version(title.value)
    """

    def __init__(
        self,
        settings: ParserSettings | None = None,
        *,
        clock: Callable[[], float] | None = None,
        today: Callable[[], date] = date.today,
        image_validator: ImageUrlValidator | None = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Engine configuration; the global settings by default
            clock: Monotonic clock used for cache expiry (for tests)
            today: Date source for synthesized versions (for tests)
            image_validator: Validator applied to image candidates
        """
        self.settings = settings or get_settings()
        self.logger = get_class_logger(self)
        self._started_at = time.time()

        self.cache = ExtractionCache(self.settings.cache_ttl_seconds, clock=clock)
        self.metrics = MetricsRecorder(enabled=self.settings.enable_metrics)

        self.resolver = SelectorResolver(self.settings, self.cache, self.metrics)
        self.fields = FieldExtractor(
            self.settings,
            self.resolver,
            self.metrics,
            image_validator=image_validator,
            today=today,
        )
        self.patterns = PatternMatcher(self.metrics)
        self.scheduler = TaskScheduler(self.settings, self.metrics)
        self.streams = StreamProcessor(self.settings, self.resolver)
        self.analyzer = ContentAnalyzer(self.metrics)

        self.logger.debug(
            f"Extraction engine initialized (cache_ttl={self.settings.cache_ttl_seconds}s, "
            f"max_attempts={self.settings.max_selector_attempts})"
        )

    def load_document(self, html: str | bytes) -> HtmlDocument:
        return HtmlDocument(html, self.settings.fingerprint_length)

    def _scope(self, document: HtmlDocument, container: Tag | None) -> SearchScope:
        return SearchScope(document, container)

    # Selector resolution

    def resolve(
        self,
        document: HtmlDocument,
        selectors: Sequence[str],
        container: Tag | None = None,
        max_attempts: int | None = None,
        fallback_to_document: bool = False,
    ) -> ExtractionOutcome:
        return self.resolver.resolve(
            self._scope(document, container),
            selectors,
            max_attempts=max_attempts,
            fallback_to_document=fallback_to_document,
        )

    # Field extraction

    def extract_title(
        self, document: HtmlDocument, container: Tag | None, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        return self.fields.extract_title(self._scope(document, container), selectors)

    def extract_url(
        self, document: HtmlDocument, container: Tag | None, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        return self.fields.extract_url(self._scope(document, container), selectors)

    def extract_image_url(
        self, document: HtmlDocument, container: Tag | None, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        return self.fields.extract_image_url(
            self._scope(document, container), selectors
        )

    def extract_version(self, title: str) -> str:
        return self.fields.extract_version(title)

    def extract_version_outcome(self, title: str) -> ExtractionOutcome:
        return self.fields.extract_version_outcome(title)

    def normalize_url(self, url: Any) -> str:
        return self.fields.normalize_url(url)

    # Patterns, tasks, streaming, analysis

    def match_patterns(
        self, document: HtmlDocument, patterns: Sequence[PatternSpec]
    ) -> ExtractionOutcome:
        return self.patterns.match_patterns(document, patterns)

    async def run_batch(
        self,
        document: HtmlDocument,
        tasks: Sequence[Task],
        max_concurrency: int | None = None,
    ) -> list[ExtractionOutcome]:
        return await self.scheduler.run_batch(document, tasks, max_concurrency)

    def stream_extract(
        self,
        source: Any,
        selectors: Sequence[str],
        chunk_size: int | None = None,
    ) -> ExtractionStream:
        return self.streams.stream_extract(source, selectors, chunk_size)

    def analyze(
        self,
        document: HtmlDocument,
        options: ContentAnalysisOptions | None = None,
    ) -> ContentAnalysisResult:
        return self.analyzer.analyze(document, options)

    # Metrics & lifecycle

    def get_metrics_snapshot(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def reset_metrics(self) -> None:
        self.metrics.reset()
        self.fields.image_validator.reset_metrics()

    def clear_cache(self) -> int:
        removed = self.cache.clear()
        self.logger.info(f"Extraction cache cleared ({removed} entries)")
        return removed

    def get_service_info(self) -> dict[str, Any]:
        """Summary of configuration, cache and metrics state."""
        return {
            "version": __version__,
            "uptime_seconds": time.time() - self._started_at,
            "settings": self.settings.model_dump(),
            "cache": self.cache.get_stats(),
            "metrics": self.metrics.snapshot().to_dict(),
            "image_validation": {
                "total": self.fields.image_validator.metrics.total_validations,
                "valid": self.fields.image_validator.metrics.valid_count,
                "invalid": self.fields.image_validator.metrics.invalid_count,
            },
        }
