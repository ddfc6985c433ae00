"""
Field extractors for patch-note listings: title, URL, image and version.

Each extractor runs its selector chain inside a container first and only
then falls back to a wider search. Attempt counts follow the resolver's
rules: one per selector tried, plus one for the fallback step.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from bs4 import Tag

from ..constants import (
    CONTAINER_HREF_SELECTOR,
    CONTAINER_TEXT_SELECTOR,
    PATCH_TITLE_PATTERNS,
    SYNTHETIC_VERSION_FORMAT,
    VERSION_PATTERNS,
    OperationName,
)
from ..core.logging import get_class_logger
from ..core.metrics import MetricsRecorder
from ..core.validators import ImageUrlValidator, validate_selector_chain
from ..document import HtmlDocument, SearchScope
from ..models import ExtractionOutcome
from ..settings import ParserSettings
from .resolver import SelectorResolver

_TITLE_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in PATCH_TITLE_PATTERNS)
_VERSION_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in VERSION_PATTERNS)

# Reads the image reference off a matched element
ImageAccessor = Callable[[Tag], str | None]


def normalize_patch_title(text: str, template: str) -> str | None:
    """
    Re-render a recognizable patch title as a canonical label.

    Args:
        text: Raw title text
        template: Label template containing "{version}"

    Returns:
        The rendered label, or None if no patch pattern matches
    """
    if not text:
        return None
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(text)
        if match:
            return template.format(version=match.group(1))
    return None


def parse_version(text: str) -> str | None:
    """First version token in text, or None."""
    if not isinstance(text, str):
        return None
    for pattern in _VERSION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def default_image_accessor(element: Tag) -> str | None:
    src = HtmlDocument.attr(element, "src")
    if src and src.strip():
        return src.strip()
    data_src = HtmlDocument.attr(element, "data-src")
    if data_src and data_src.strip():
        return data_src.strip()
    return None


def _contains_keyword(value: str, keywords: Sequence[str]) -> bool:
    lowered = value.lower()
    return any(keyword in lowered for keyword in keywords)


class FieldExtractor:
    """Extracts typed fields from a container using selector chains."""

    def __init__(
        self,
        settings: ParserSettings,
        resolver: SelectorResolver,
        metrics: MetricsRecorder,
        image_validator: ImageUrlValidator | None = None,
        image_accessor: ImageAccessor = default_image_accessor,
        today: Callable[[], date] = date.today,
    ):
        self.settings = settings
        self.resolver = resolver
        self.metrics = metrics
        self.image_validator = image_validator or ImageUrlValidator()
        self.image_accessor = image_accessor
        self._today = today
        self.logger = get_class_logger(self)

    # ------------------------------------------------------------------
    # Title
    # ------------------------------------------------------------------

    def extract_title(
        self, scope: SearchScope, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        chain = validate_selector_chain(selectors)
        fallback = self.settings.enable_fallback_search

        def compute() -> ExtractionOutcome:
            start = time.perf_counter()
            template = self.settings.title_label_template
            attempts = 0

            for probe in self.resolver.iter_selectors(scope, chain):
                attempts = probe.attempts
                if not probe.matched:
                    continue
                raw = probe.elements[0].get_text().strip()
                label = normalize_patch_title(raw, template)
                if label:
                    return ExtractionOutcome(
                        success=True,
                        value=label,
                        selector_used=probe.selector,
                        attempts=attempts,
                        elapsed_time=time.perf_counter() - start,
                        element_count=len(probe.elements),
                        fallback_level=probe.index,
                        metadata={"raw_title": raw},
                    )

            if fallback:
                attempts += 1
                raw = scope.document.text(scope.root).strip()
                label = normalize_patch_title(raw, template)
                if label:
                    return ExtractionOutcome(
                        success=True,
                        value=label,
                        selector_used=CONTAINER_TEXT_SELECTOR,
                        used_fallback=True,
                        attempts=attempts,
                        elapsed_time=time.perf_counter() - start,
                        element_count=1,
                        fallback_level=len(chain),
                    )

            return ExtractionOutcome.failure(
                "No title found",
                attempts=attempts,
                elapsed_time=time.perf_counter() - start,
            )

        return self.resolver.cached(
            OperationName.TITLE.value,
            scope,
            chain,
            compute,
            qualifiers=(f"fallback={int(fallback)}",),
        )

    # ------------------------------------------------------------------
    # URL
    # ------------------------------------------------------------------

    def extract_url(
        self, scope: SearchScope, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        chain = validate_selector_chain(selectors)
        fallback = self.settings.enable_fallback_search

        def compute() -> ExtractionOutcome:
            start = time.perf_counter()

            if HtmlDocument.is_link(scope.container):
                href = HtmlDocument.attr(scope.container, "href")
                if href and href.strip():
                    return self._url_success(
                        href.strip(), CONTAINER_HREF_SELECTOR, 1, start
                    )

            attempts = 0
            tried: list[str] = []
            for probe in self.resolver.iter_selectors(scope, chain):
                attempts = probe.attempts
                if probe.error is None:
                    tried.append(probe.selector)
                if not probe.matched:
                    continue
                href = HtmlDocument.attr(probe.elements[0], "href")
                if href and href.strip():
                    return self._url_success(
                        href.strip(),
                        probe.selector,
                        attempts,
                        start,
                        element_count=len(probe.elements),
                        fallback_level=probe.index,
                    )

            if fallback and tried:
                attempts += 1
                keywords = self.settings.url_topic_keywords
                group = ", ".join(tried)
                for element in self.resolver.select_document(scope, group):
                    href = HtmlDocument.attr(element, "href")
                    if href and _contains_keyword(href, keywords):
                        return self._url_success(
                            href.strip(),
                            group,
                            attempts,
                            start,
                            used_fallback=True,
                            fallback_level=len(chain),
                        )

            return ExtractionOutcome.failure(
                "No URL found",
                attempts=attempts,
                elapsed_time=time.perf_counter() - start,
            )

        return self.resolver.cached(
            OperationName.URL.value,
            scope,
            chain,
            compute,
            qualifiers=(f"fallback={int(fallback)}",),
            include_document=fallback,
        )

    def _url_success(
        self,
        href: str,
        selector: str,
        attempts: int,
        start: float,
        **kwargs: Any,
    ) -> ExtractionOutcome:
        kwargs.setdefault("element_count", 1)
        return ExtractionOutcome(
            success=True,
            value=href,
            selector_used=selector,
            attempts=attempts,
            elapsed_time=time.perf_counter() - start,
            metadata={"normalized_url": self.normalize_url(href)},
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def extract_image_url(
        self, scope: SearchScope, selectors: Sequence[str]
    ) -> ExtractionOutcome:
        chain = validate_selector_chain(selectors)
        fallback = self.settings.enable_fallback_search

        def compute() -> ExtractionOutcome:
            start = time.perf_counter()
            attempts = 0
            tried: list[str] = []
            rejected: list[str] = []

            for probe in self.resolver.iter_selectors(scope, chain):
                attempts = probe.attempts
                if probe.error is None:
                    tried.append(probe.selector)
                if not probe.matched:
                    continue
                candidate = self.image_accessor(probe.elements[0])
                if candidate is None:
                    continue
                if self.image_validator.is_valid_image_url(candidate):
                    return ExtractionOutcome(
                        success=True,
                        value=candidate,
                        selector_used=probe.selector,
                        attempts=attempts,
                        elapsed_time=time.perf_counter() - start,
                        element_count=len(probe.elements),
                        fallback_level=probe.index,
                    )
                rejected.append(candidate)

            if fallback and tried:
                attempts += 1
                keywords = self.settings.image_topic_keywords
                group = ", ".join(tried)
                for element in self.resolver.select_document(scope, group):
                    candidate = self.image_accessor(element)
                    if (
                        candidate
                        and _contains_keyword(candidate, keywords)
                        and self.image_validator.is_valid_image_url(candidate)
                    ):
                        return ExtractionOutcome(
                            success=True,
                            value=candidate,
                            selector_used=group,
                            used_fallback=True,
                            attempts=attempts,
                            elapsed_time=time.perf_counter() - start,
                            element_count=1,
                            fallback_level=len(chain),
                        )

            return ExtractionOutcome.failure(
                "No image URL found",
                attempts=attempts,
                elapsed_time=time.perf_counter() - start,
                metadata={"rejected_candidates": rejected},
            )

        return self.resolver.cached(
            OperationName.IMAGE.value,
            scope,
            chain,
            compute,
            qualifiers=(f"fallback={int(fallback)}",),
            include_document=fallback,
        )

    # ------------------------------------------------------------------
    # Version & URL normalization
    # ------------------------------------------------------------------

    def extract_version(self, title: str) -> str:
        """
        Extract a version token such as "14.2.1" from a title.

        Falls back to a date-based version (YYYY.MM.DD) when the title has
        no recognizable version; use extract_version_outcome to tell the two
        cases apart.
        """
        return self.extract_version_outcome(title).value

    def extract_version_outcome(self, title: str) -> ExtractionOutcome:
        start = time.perf_counter()
        version = parse_version(title)

        if version is not None:
            self.logger.debug(f"Version extracted: {version} from title: {title}")
            outcome = ExtractionOutcome(
                success=True,
                value=version,
                selector_used="version-pattern",
                attempts=1,
                elapsed_time=time.perf_counter() - start,
                element_count=1,
                metadata={"synthesized": False},
            )
        else:
            synthetic = self._today().strftime(SYNTHETIC_VERSION_FORMAT)
            self.logger.warning(
                f"No version found in title: {title!r}, using fallback: {synthetic}"
            )
            outcome = ExtractionOutcome(
                success=True,
                value=synthetic,
                selector_used="date-fallback",
                used_fallback=True,
                attempts=1,
                elapsed_time=time.perf_counter() - start,
                metadata={"synthesized": True},
            )

        self.metrics.record_operation(
            OperationName.VERSION.value,
            outcome.success,
            outcome.elapsed_time,
            outcome.used_fallback,
        )
        return outcome

    def normalize_url(self, url: Any) -> str:
        """
        Convert a possibly-relative URL into an absolute one.

        Absolute http(s) URLs are returned unchanged, protocol-relative URLs
        get the default scheme, and paths are joined onto the base origin.
        """
        if not url or not isinstance(url, str) or not url.strip():
            self.logger.warning(f"Invalid URL provided for normalization: {url!r}")
            return ""

        url = url.strip()
        if url.lower().startswith(("http://", "https://")):
            return url
        if url.startswith("//"):
            return f"{self.settings.default_scheme}:{url}"
        if url.startswith("/"):
            return f"{self.settings.base_origin}{url}"
        return f"{self.settings.base_origin}/{url}"
