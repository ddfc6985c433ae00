"""
Bounded-concurrency execution of heterogeneous extraction tasks.

Tasks are ordered by priority and split into sequential batches. Tasks in a
batch run concurrently on a thread pool; the next batch starts only after
every task in the current one has finished or failed.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from bs4 import Tag

from ..constants import TaskKind
from ..core.async_utils import run_in_executor, thread_pool_executor
from ..core.exceptions import (
    ConfigurationError,
    PatchParserError,
    UnknownTaskKindError,
)
from ..core.logging import get_class_logger
from ..core.metrics import MetricsRecorder
from ..core.validators import positive_integer, validate_selector_chain
from ..document import HtmlDocument
from ..models import ExtractionOutcome, Task
from ..settings import ParserSettings

T = TypeVar("T")

TaskHandler = Callable[[HtmlDocument, Task], dict[str, Any]]


def plan_batches(
    tasks: Sequence[T],
    max_concurrency: int,
    priority: Callable[[T], int] = lambda task: task.priority,
) -> list[list[T]]:
    """
    Order tasks by descending priority and split them into batches.

    Each batch holds min(max_concurrency, remaining) tasks. Ties keep their
    submission order.
    """
    if max_concurrency < 1:
        raise ConfigurationError(
            f"max_concurrency must be at least 1, got {max_concurrency}"
        )
    ordered = sorted(tasks, key=priority, reverse=True)
    batches: list[list[T]] = []
    index = 0
    while index < len(ordered):
        size = min(max_concurrency, len(ordered) - index)
        batches.append(ordered[index : index + size])
        index += size
    return batches


def _describe(element: Tag) -> dict[str, Any]:
    return {
        "text": element.get_text(),
        "html": element.decode_contents(),
        "attributes": {
            name: " ".join(value) if isinstance(value, list) else value
            for name, value in element.attrs.items()
        },
    }


@dataclass
class BatchStats:
    """Counters for the most recent run_batch call"""

    total_tasks: int = 0
    batches: int = 0
    succeeded: int = 0
    failed: int = 0
    duration: float = 0.0


class TaskScheduler:
    """Runs extract/search/analyze tasks with a concurrency bound."""

    def __init__(
        self,
        settings: ParserSettings,
        metrics: MetricsRecorder,
    ):
        self.settings = settings
        self.metrics = metrics
        self.logger = get_class_logger(self)
        self.last_stats = BatchStats()
        self._handlers: dict[TaskKind, TaskHandler] = {
            TaskKind.EXTRACT: self._run_extract,
            TaskKind.SEARCH: self._run_search,
            TaskKind.ANALYZE: self._run_analyze,
        }

    async def run_batch(
        self,
        document: HtmlDocument,
        tasks: Sequence[Task],
        max_concurrency: int | None = None,
    ) -> list[ExtractionOutcome]:
        """
        Execute tasks and return one outcome per task, in submission order.

        Args:
            document: Document every task runs against
            tasks: Tasks to execute
            max_concurrency: Upper bound on tasks running at once

        Raises:
            ConfigurationError: If max_concurrency is below 1
        """
        bound = (
            self.settings.max_concurrent_tasks
            if max_concurrency is None
            else max_concurrency
        )
        if not positive_integer().validate(bound, "max_concurrency"):
            raise ConfigurationError(
                f"max_concurrency must be a positive integer, got {bound!r}"
            )

        start = time.perf_counter()
        # Batches carry submission indexes so results can be put back in order
        batches = plan_batches(
            list(enumerate(tasks)), bound, priority=lambda pair: pair[1].priority
        )
        stats = BatchStats(total_tasks=len(tasks), batches=len(batches))
        outcomes: list[ExtractionOutcome | None] = [None] * len(tasks)

        if batches:
            async with thread_pool_executor(bound) as executor:
                for batch_index, batch in enumerate(batches):
                    results = await asyncio.gather(
                        *(
                            run_in_executor(
                                executor,
                                self.execute_task,
                                document,
                                task,
                                batch_index,
                            )
                            for _, task in batch
                        )
                    )
                    for (position, _), outcome in zip(batch, results, strict=True):
                        outcomes[position] = outcome
                        if outcome.success:
                            stats.succeeded += 1
                        else:
                            stats.failed += 1

        stats.duration = time.perf_counter() - start
        self.last_stats = stats
        self.logger.info(
            f"Task batch completed: {stats.total_tasks} tasks in {stats.batches} "
            f"batches, {stats.succeeded} succeeded, {stats.failed} failed "
            f"({stats.duration:.3f}s)"
        )
        return [outcome for outcome in outcomes if outcome is not None]

    def execute_task(
        self, document: HtmlDocument, task: Task, batch_index: int = 0
    ) -> ExtractionOutcome:
        """Run one task; any error becomes a failure outcome for this task only."""
        start = time.perf_counter()
        kind = task.kind.value if isinstance(task.kind, TaskKind) else task.kind
        metadata = {"task_id": task.id, "kind": kind, "batch": batch_index}

        try:
            handler = self._resolve_handler(task.kind)
            value = handler(document, task)
        except PatchParserError as e:
            return self._task_failure(task, e.message, start, metadata)
        except Exception as e:
            self.logger.exception(f"Unexpected error in task {task.id}")
            return self._task_failure(task, str(e), start, metadata)

        outcome = ExtractionOutcome(
            success=True,
            value=value,
            selector_used=task.id,
            attempts=1,
            elapsed_time=time.perf_counter() - start,
            element_count=value.get("element_count", 0),
            metadata=metadata,
        )
        self.metrics.record_operation(
            f"task:{metadata['kind']}", True, outcome.elapsed_time
        )
        return outcome

    def _resolve_handler(self, kind: TaskKind | str) -> TaskHandler:
        if isinstance(kind, TaskKind):
            return self._handlers[kind]
        raise UnknownTaskKindError(str(kind))

    def _task_failure(
        self, task: Task, error: str, start: float, metadata: dict[str, Any]
    ) -> ExtractionOutcome:
        elapsed = time.perf_counter() - start
        self.logger.warning(f"Task {task.id} failed: {error}")
        self.metrics.record_operation(f"task:{metadata['kind']}", False, elapsed)
        return ExtractionOutcome.failure(
            error,
            attempts=1,
            elapsed_time=elapsed,
            selector_used=task.id,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _select_all(self, document: HtmlDocument, selector: str) -> list[Tag]:
        elements = document.select(selector)
        self.metrics.record_selector(selector, bool(elements))
        return elements

    def _run_extract(self, document: HtmlDocument, task: Task) -> dict[str, Any]:
        results: list[dict[str, Any]] = []
        for selector in validate_selector_chain(task.selectors):
            results.extend(
                _describe(element) for element in self._select_all(document, selector)
            )
        return {"task_id": task.id, "results": results, "element_count": len(results)}

    def _run_search(self, document: HtmlDocument, task: Task) -> dict[str, Any]:
        matches: list[dict[str, Any]] = []
        for selector in validate_selector_chain(task.selectors):
            elements = self._select_all(document, selector)
            if elements:
                matches.append(
                    {
                        "selector": selector,
                        "count": len(elements),
                        "elements": [element.get_text() for element in elements],
                    }
                )
        return {
            "task_id": task.id,
            "matches": matches,
            "element_count": sum(match["count"] for match in matches),
        }

    def _run_analyze(self, document: HtmlDocument, task: Task) -> dict[str, Any]:
        chain = validate_selector_chain(task.selectors)
        results: dict[str, dict[str, Any]] = {}
        total = 0
        for selector in chain:
            elements = self._select_all(document, selector)
            total += len(elements)
            text_lengths = [len(element.get_text()) for element in elements]
            results[selector] = {
                "count": len(elements),
                "avg_text_length": (
                    sum(text_lengths) / len(text_lengths) if text_lengths else 0.0
                ),
                "has_images": any(element.find("img") for element in elements),
                "has_links": any(element.find("a") for element in elements),
            }
        return {
            "task_id": task.id,
            "selectors": list(chain),
            "results": results,
            "element_count": total,
        }
