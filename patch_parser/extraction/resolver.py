"""
Selector resolution with ordered fallback chains and a TTL result cache.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from bs4 import Tag

from ..constants import OperationName
from ..core.cache import CacheKeyGenerator, ExtractionCache
from ..core.exceptions import SelectorError
from ..core.logging import get_class_logger
from ..core.metrics import MetricsRecorder
from ..core.validators import validate_selector_chain
from ..document import SearchScope
from ..models import ExtractionOutcome
from ..settings import ParserSettings


@dataclass(frozen=True)
class SelectorProbe:
    """The result of running one selector from a chain."""

    index: int
    selector: str
    elements: list[Tag]
    error: SelectorError | None = None

    @property
    def matched(self) -> bool:
        return bool(self.elements)

    @property
    def attempts(self) -> int:
        return self.index + 1


class SelectorResolver:
    """
    Resolves ordered selector chains against a search scope.

    Selectors are tried in order; the first selector with at least one match
    wins. A selector the query engine rejects is logged and treated as a
    miss so the chain continues. When the container-scoped chain finds
    nothing, one additional document-wide attempt can be made with the
    combined selector group.

    Outcomes, including failures, are cached per operation, scope
    fingerprint, scope position and chain. Cache hits return the stored outcome object
    unchanged.
    """

    def __init__(
        self,
        settings: ParserSettings,
        cache: ExtractionCache,
        metrics: MetricsRecorder,
    ):
        self.settings = settings
        self.cache = cache
        self.metrics = metrics
        self.logger = get_class_logger(self)

    def iter_selectors(
        self,
        scope: SearchScope,
        selectors: Sequence[str],
        max_attempts: int | None = None,
    ) -> Iterator[SelectorProbe]:
        """
        Yield one probe per selector tried, in chain order.

        Stops after max_attempts selectors. Per-selector outcomes are
        recorded in metrics; consumers decide when a probe is good enough
        and simply stop iterating.
        """
        limit = self._attempt_limit(selectors, max_attempts)
        for index, selector in enumerate(selectors[:limit]):
            try:
                elements = scope.document.select(selector, scope.root)
            except SelectorError as e:
                self.logger.debug(f"Selector '{selector}' rejected: {e.message}")
                self.metrics.record_selector(selector, False)
                yield SelectorProbe(index, selector, [], e)
                continue

            self.metrics.record_selector(selector, bool(elements))
            if not elements:
                self.logger.debug(f"Selector '{selector}' matched nothing")
            yield SelectorProbe(index, selector, elements)

    def resolve(
        self,
        scope: SearchScope,
        selectors: Sequence[str],
        max_attempts: int | None = None,
        fallback_to_document: bool = False,
    ) -> ExtractionOutcome:
        """
        Find the first element matched by a selector chain.

        Args:
            scope: Container or whole-document scope to search
            selectors: Ordered selector chain, highest priority first
            max_attempts: Cap on selectors tried (defaults to settings)
            fallback_to_document: Spend one extra attempt on the whole
                document when the container search finds nothing

        Returns:
            ExtractionOutcome whose value is the first matched element

        Raises:
            ValidationError: If the chain is empty or has blank entries
            DocumentError: If traversal fails for a reason other than
                a malformed selector
        """
        chain = validate_selector_chain(selectors)
        limit = self._attempt_limit(chain, max_attempts)
        can_fallback = fallback_to_document and not scope.is_document

        def compute() -> ExtractionOutcome:
            return self._resolve_uncached(scope, chain, limit, can_fallback)

        def in_tree(outcome: ExtractionOutcome) -> bool:
            return outcome.value is None or scope.document.contains(outcome.value)

        # Matched elements are live nodes, so identical markup elsewhere in
        # the tree (or in another document) must not share an entry
        return self.cached(
            OperationName.RESOLVE.value,
            scope,
            chain,
            compute,
            qualifiers=(
                f"max={limit}",
                f"fallback={int(can_fallback)}",
                f"path={scope.path()}",
            ),
            include_document=can_fallback,
            reusable=in_tree,
        )

    def _resolve_uncached(
        self,
        scope: SearchScope,
        chain: tuple[str, ...],
        limit: int,
        can_fallback: bool,
    ) -> ExtractionOutcome:
        start = time.perf_counter()
        tried: list[str] = []
        attempts = 0

        for probe in self.iter_selectors(scope, chain, limit):
            attempts = probe.attempts
            if probe.error is None:
                tried.append(probe.selector)
            if probe.matched:
                return ExtractionOutcome(
                    success=True,
                    value=probe.elements[0],
                    selector_used=probe.selector,
                    attempts=attempts,
                    elapsed_time=time.perf_counter() - start,
                    element_count=len(probe.elements),
                    fallback_level=probe.index,
                )

        if can_fallback and tried:
            attempts += 1
            group = ", ".join(tried)
            element = self.search_document(scope, group)
            if element is not None:
                return ExtractionOutcome(
                    success=True,
                    value=element,
                    selector_used=group,
                    used_fallback=True,
                    attempts=attempts,
                    elapsed_time=time.perf_counter() - start,
                    element_count=1,
                    fallback_level=len(chain),
                )

        return ExtractionOutcome.failure(
            attempts=attempts,
            elapsed_time=time.perf_counter() - start,
            metadata={"selectors_tried": list(chain[:limit])},
        )

    def select_document(self, scope: SearchScope, selector: str) -> list[Tag]:
        """One document-wide lookup; a rejected selector counts as a miss."""
        try:
            elements = scope.document.select(selector)
        except SelectorError as e:
            self.logger.debug(f"Document fallback '{selector}' rejected: {e.message}")
            self.metrics.record_selector(selector, False)
            return []
        self.metrics.record_selector(selector, bool(elements))
        return elements

    def search_document(self, scope: SearchScope, selector: str) -> Tag | None:
        elements = self.select_document(scope, selector)
        return elements[0] if elements else None

    def cached(
        self,
        operation: str,
        scope: SearchScope,
        selectors: Sequence[str],
        compute: Callable[[], ExtractionOutcome],
        qualifiers: Sequence[str] = (),
        include_document: bool = False,
        reusable: Callable[[ExtractionOutcome], bool] | None = None,
    ) -> ExtractionOutcome:
        """
        Return a cached outcome or compute, record and store a fresh one.

        Only computed outcomes count as operations in metrics; a cache hit
        is recorded as a hit and nothing else. A stored outcome rejected by
        reusable is treated as a miss and replaced.
        """
        if not self.settings.enable_caching:
            outcome = compute()
            self._record(operation, outcome)
            return outcome

        key = self.cache_key(operation, scope, selectors, qualifiers, include_document)
        entry = self.cache.get_entry(key)
        if entry is not None and (reusable is None or reusable(entry.value)):
            self.metrics.record_cache_hit()
            return entry.value

        self.metrics.record_cache_miss()
        outcome = compute()
        self.cache.set(key, outcome, {"operation": operation})
        self._record(operation, outcome)
        return outcome

    def cache_key(
        self,
        operation: str,
        scope: SearchScope,
        selectors: Sequence[str],
        qualifiers: Sequence[str] = (),
        include_document: bool = False,
    ) -> str:
        fingerprint = scope.fingerprint()
        if include_document and not scope.is_document:
            fingerprint = f"{fingerprint}@{scope.document.fingerprint()}"
        op = ";".join([operation, *qualifiers])
        return CacheKeyGenerator.extraction_key(op, fingerprint, selectors)

    def _record(self, operation: str, outcome: ExtractionOutcome) -> None:
        self.metrics.record_operation(
            operation, outcome.success, outcome.elapsed_time, outcome.used_fallback
        )

    def _attempt_limit(
        self, selectors: Sequence[str], max_attempts: int | None
    ) -> int:
        budget = (
            self.settings.max_selector_attempts
            if max_attempts is None
            else max_attempts
        )
        return max(0, min(len(selectors), budget))
