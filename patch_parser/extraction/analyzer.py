"""
Single-pass content statistics for a document.
"""

from __future__ import annotations

import re
import time
from collections import Counter
from datetime import datetime

from ..constants import (
    AUTHOR_SELECTORS,
    CJK_LANGUAGE_THRESHOLD,
    DESCRIPTION_META_SELECTORS,
    ENTITY_SELECTOR,
    HEADING_SELECTOR,
    MIN_KEYWORD_LENGTH,
    PUBLISH_DATE_SELECTORS,
    READABILITY_BASE,
    READABILITY_SENTENCE_WEIGHT,
    READABILITY_SYLLABLE_WEIGHT,
    SECTION_SELECTOR,
    TITLE_META_SELECTORS,
    TOPIC_HEADING_SELECTOR,
    UNNAMED_SECTION,
    OperationName,
)
from ..core.exceptions import DocumentError
from ..core.logging import get_class_logger
from ..core.metrics import MetricsRecorder
from ..document import HtmlDocument
from ..models import (
    ContentAnalysisOptions,
    ContentAnalysisResult,
    ContentMetadata,
    SemanticStructure,
)

_PUNCTUATION = re.compile(r"[^\w\s]")
_SENTENCE_SPLIT = re.compile(r"[.!?。！？]+")
_VOWEL_RUN = re.compile(r"[aeiouy]+")
_NON_LETTER = re.compile(r"[^a-z]")
# Hiragana, katakana and CJK unified ideographs
_CJK_CHAR = re.compile(r"[\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf]")
_WHITESPACE = re.compile(r"\s")


def count_words(text: str) -> int:
    return len(text.split())


def extract_keywords(text: str, limit: int) -> list[str]:
    """Most frequent words longer than three characters; ties keep first-seen order."""
    words = [
        word
        for word in _PUNCTUATION.sub("", text.lower()).split()
        if len(word) >= MIN_KEYWORD_LENGTH
    ]
    # Counter preserves insertion order, and most_common sorts stably
    return [word for word, _ in Counter(words).most_common(limit)]


def count_syllables(word: str) -> int:
    letters = _NON_LETTER.sub("", word.lower())
    if not letters:
        return 0
    return max(1, len(_VOWEL_RUN.findall(letters)))


def readability_score(text: str) -> float:
    """Flesch reading ease, clamped to [0, 100]. Empty text scores 0."""
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    words = text.split()
    if not sentences or not words:
        return 0.0

    syllables = sum(count_syllables(word) for word in words)
    score = (
        READABILITY_BASE
        - READABILITY_SENTENCE_WEIGHT * (len(words) / len(sentences))
        - READABILITY_SYLLABLE_WEIGHT * (syllables / len(words))
    )
    return max(0.0, min(100.0, score))


def detect_language(text: str) -> str:
    """Return "ja" when CJK characters exceed 10% of non-whitespace characters."""
    total = len(_WHITESPACE.sub("", text))
    if total == 0:
        return "unknown"
    ratio = len(_CJK_CHAR.findall(text)) / total
    return "ja" if ratio > CJK_LANGUAGE_THRESHOLD else "en"


def parse_publish_date(value: str) -> datetime | None:
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%Y.%m.%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


class ContentAnalyzer:
    """Counts, keywords, readability, language, metadata and structure."""

    def __init__(self, metrics: MetricsRecorder):
        self.metrics = metrics
        self.logger = get_class_logger(self)

    def analyze(
        self,
        document: HtmlDocument,
        options: ContentAnalysisOptions | None = None,
    ) -> ContentAnalysisResult:
        """
        Analyze the document's visible text and structure.

        Counts are always computed. Each optional part is computed only when
        enabled in options and is None otherwise.

        Raises:
            DocumentError: If the document cannot be traversed
        """
        options = options or ContentAnalysisOptions()
        start = time.perf_counter()

        try:
            result = self._analyze(document, options)
        except DocumentError:
            self.metrics.record_operation(
                OperationName.ANALYZE.value, False, time.perf_counter() - start
            )
            raise

        elapsed = time.perf_counter() - start
        self.metrics.record_operation(OperationName.ANALYZE.value, True, elapsed)
        self.logger.debug(
            f"Content analysis completed: {result.word_count} words "
            f"in {elapsed:.4f}s"
        )
        return result

    def _analyze(
        self, document: HtmlDocument, options: ContentAnalysisOptions
    ) -> ContentAnalysisResult:
        body_text = document.body_text(" ")
        raw_text = document.body_text("")

        return ContentAnalysisResult(
            word_count=count_words(body_text),
            character_count=len(raw_text),
            paragraph_count=len(document.select("p")),
            heading_count=len(document.select(HEADING_SELECTOR)),
            link_count=len(document.select("a[href]")),
            image_count=len(document.select("img")),
            keywords=(
                extract_keywords(body_text, options.keyword_limit)
                if options.include_keywords
                else None
            ),
            readability_score=(
                readability_score(body_text) if options.include_readability else None
            ),
            language=detect_language(body_text) if options.include_language else None,
            metadata=(
                self._extract_metadata(document) if options.include_metadata else None
            ),
            structure=(
                self._analyze_structure(document) if options.include_structure else None
            ),
        )

    def _first_value(
        self, document: HtmlDocument, selectors: tuple[str, ...]
    ) -> str | None:
        for selector in selectors:
            element = document.select_one(selector)
            if element is None:
                continue
            value = (
                HtmlDocument.attr(element, "content")
                or HtmlDocument.attr(element, "datetime")
                or element.get_text()
            )
            if value and value.strip():
                return value.strip()
        return None

    def _extract_metadata(self, document: HtmlDocument) -> ContentMetadata:
        title_tag = document.select_one("title")
        title = title_tag.get_text().strip() if title_tag is not None else ""
        if not title:
            title = self._first_value(document, TITLE_META_SELECTORS) or ""
        if not title:
            heading = document.select_one("h1")
            title = heading.get_text().strip() if heading is not None else ""

        publish_date = None
        for selector in PUBLISH_DATE_SELECTORS:
            candidate = self._first_value(document, (selector,))
            if candidate:
                publish_date = parse_publish_date(candidate)
                if publish_date is not None:
                    break

        return ContentMetadata(
            title=title or None,
            description=self._first_value(document, DESCRIPTION_META_SELECTORS),
            author=self._first_value(document, AUTHOR_SELECTORS),
            publish_date=publish_date,
        )

    def _analyze_structure(self, document: HtmlDocument) -> SemanticStructure:
        sections = [
            HtmlDocument.attr(element, "id")
            or HtmlDocument.attr(element, "class")
            or UNNAMED_SECTION
            for element in document.select(SECTION_SELECTOR)
        ]
        topics = [
            text
            for text in (
                element.get_text().strip()
                for element in document.select(TOPIC_HEADING_SELECTOR)
            )
            if text
        ]
        entities = [
            element.get_text().strip() for element in document.select(ENTITY_SELECTOR)
        ]
        return SemanticStructure(sections=sections, topics=topics, entities=entities)
