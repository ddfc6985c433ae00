"""
Confidence-scored pattern matching over a whole document.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

from bs4 import BeautifulSoup, Tag

from ..constants import (
    CONFIDENCE_BASE,
    CONFIDENCE_CAP,
    CONFIDENCE_CLASS_BONUS,
    CONFIDENCE_ID_BONUS,
    CONFIDENCE_TEXT_BONUS,
    POSITION_DEPTH_STEP,
    POSITION_SIBLING_STEP,
    OperationName,
)
from ..core.exceptions import DocumentError
from ..core.logging import get_class_logger
from ..core.metrics import MetricsRecorder
from ..document import HtmlDocument
from ..models import (
    ElementPosition,
    ExtractionOutcome,
    MatchEntry,
    PatternMatch,
    PatternSpec,
)


def calculate_confidence(element: Tag) -> float:
    """
    Score how specific a matched element is.

    Starts at 0.5 and adds 0.3 for an id, 0.2 for a class and 0.1 for
    non-blank text, capped at 1.0.
    """
    confidence = CONFIDENCE_BASE
    if element.get("id"):
        confidence += CONFIDENCE_ID_BONUS
    if element.get("class"):
        confidence += CONFIDENCE_CLASS_BONUS
    if element.get_text().strip():
        confidence += CONFIDENCE_TEXT_BONUS
    return min(CONFIDENCE_CAP, round(confidence, 10))


def element_position(element: Tag) -> ElementPosition:
    """Approximate position: preceding element siblings on x, depth on y."""
    x = 0
    y = 0
    current = element
    while isinstance(current.parent, Tag) and not isinstance(
        current.parent, BeautifulSoup
    ):
        siblings = sum(
            1 for sibling in current.previous_siblings if isinstance(sibling, Tag)
        )
        x += siblings * POSITION_SIBLING_STEP
        y += POSITION_DEPTH_STEP
        current = current.parent
    return ElementPosition(x=x, y=y)


def _default_transformer(element: Tag) -> str:
    return element.get_text().strip()


class PatternMatcher:
    """Applies pattern specs in priority order and scores every match."""

    def __init__(self, metrics: MetricsRecorder):
        self.metrics = metrics
        self.logger = get_class_logger(self)

    def match_patterns(
        self, document: HtmlDocument, patterns: Sequence[PatternSpec]
    ) -> ExtractionOutcome:
        """
        Run every pattern against the document.

        Patterns are applied in descending priority (ties keep their given
        order). For each selector, every matched element goes through the
        pattern's validator, then its transformer (stripped text by default),
        then its regex. Surviving values are scored and positioned.

        Returns:
            ExtractionOutcome whose value is a list of PatternMatch. A
            failure is returned only when traversal itself fails.
        """
        start = time.perf_counter()
        ordered = sorted(patterns, key=lambda p: p.priority, reverse=True)
        results: list[PatternMatch] = []

        try:
            for pattern in ordered:
                results.append(self._match_one(document, pattern))
        except DocumentError as e:
            elapsed = time.perf_counter() - start
            self.logger.warning(f"Pattern matching failed: {e.message}")
            self.metrics.record_operation(OperationName.PATTERNS.value, False, elapsed)
            return ExtractionOutcome.failure(
                e.message,
                attempts=len(results) + 1,
                elapsed_time=elapsed,
            )

        elapsed = time.perf_counter() - start
        total = sum(result.total_matches for result in results)
        self.metrics.record_operation(OperationName.PATTERNS.value, True, elapsed)
        self.logger.debug(
            f"Pattern matching completed: {len(results)} patterns, {total} matches"
        )
        return ExtractionOutcome(
            success=True,
            value=results,
            selector_used=results[0].pattern_name if results else None,
            attempts=len(results),
            elapsed_time=elapsed,
            element_count=total,
        )

    def _match_one(self, document: HtmlDocument, pattern: PatternSpec) -> PatternMatch:
        start = time.perf_counter()
        transformer = pattern.transformer or _default_transformer
        entries: list[MatchEntry] = []

        for selector in pattern.selectors:
            elements = document.select(selector)
            self.metrics.record_selector(selector, bool(elements))
            for element in elements:
                if pattern.validator is not None and not pattern.validator(element):
                    continue
                value: Any = transformer(element)
                if pattern.regex is not None and not pattern.regex.search(str(value)):
                    continue
                entries.append(
                    MatchEntry(
                        value=value,
                        confidence_score=calculate_confidence(element),
                        position=element_position(element),
                        selector=selector,
                        element=element,
                    )
                )

        return PatternMatch(
            pattern_name=pattern.name,
            matches=entries,
            total_matches=len(entries),
            elapsed_time=time.perf_counter() - start,
        )
