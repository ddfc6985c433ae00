"""
Data models for extraction results, pattern specs, tasks and content analysis.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from re import Pattern
from typing import Any

from bs4 import Tag
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_KEYWORD_LIMIT, TaskKind


class ExtractionOutcome(BaseModel):
    """Result of one extraction operation. Absence is a failure, never an exception."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: bool
    value: Any = None
    selector_used: str | None = None
    used_fallback: bool = False
    attempts: int = Field(default=0, ge=0)
    elapsed_time: float = Field(default=0.0, ge=0.0)
    error: str | None = None
    element_count: int = Field(default=0, ge=0)
    fallback_level: int = -1
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(
        cls,
        error: str | None = None,
        attempts: int = 0,
        elapsed_time: float = 0.0,
        **kwargs: Any,
    ) -> ExtractionOutcome:
        return cls(
            success=False,
            error=error,
            attempts=attempts,
            elapsed_time=elapsed_time,
            **kwargs,
        )


class StreamOutcome(ExtractionOutcome):
    """Extraction result for one chunk of a streamed document."""

    chunk_offset: int = Field(default=0, ge=0)
    chunk_length: int = Field(default=0, ge=0)
    bytes_consumed: int = Field(default=0, ge=0)
    is_final: bool = False


@dataclass(frozen=True)
class StreamChunk:
    """A bounded run of bytes from a streamed document."""

    data: bytes
    offset: int
    is_final: bool = False

    @property
    def end(self) -> int:
        return self.offset + len(self.data)

    def __len__(self) -> int:
        return len(self.data)


class ElementPosition(BaseModel):
    """Approximate tree position: sibling offset on x, depth on y."""

    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0


class MatchEntry(BaseModel):
    """One element matched by a pattern."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any
    confidence_score: float = Field(ge=0.0, le=1.0)
    position: ElementPosition
    selector: str
    element: Tag | None = Field(default=None, exclude=True, repr=False)


class PatternMatch(BaseModel):
    """All matches produced by a single pattern."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern_name: str
    matches: list[MatchEntry] = Field(default_factory=list)
    total_matches: int = Field(default=0, ge=0)
    elapsed_time: float = Field(default=0.0, ge=0.0)


class PatternSpec(BaseModel):
    """A named selector list with optional element filters and value transforms."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    selectors: list[str] = Field(min_length=1)
    priority: int = 0
    validator: Callable[[Tag], bool] | None = None
    transformer: Callable[[Tag], Any] | None = None
    regex: Pattern[str] | None = None

    @field_validator("selectors")
    @classmethod
    def validate_selectors(cls, v: list[str]) -> list[str]:
        if any(not isinstance(s, str) or not s.strip() for s in v):
            raise ValueError("selectors must be non-empty strings")
        return [s.strip() for s in v]


class Task(BaseModel):
    """A unit of work for the task scheduler."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: TaskKind | str = Field(union_mode="left_to_right")
    selectors: list[str] = Field(default_factory=list)
    priority: int = 0

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> TaskKind | str:
        if isinstance(v, TaskKind):
            return v
        try:
            return TaskKind(str(v).lower())
        except ValueError:
            # Unknown kinds are kept so the scheduler can fail just this task
            return str(v)


class ContentAnalysisOptions(BaseModel):
    """Switches for the optional parts of content analysis."""

    include_keywords: bool = True
    include_readability: bool = True
    include_language: bool = True
    include_metadata: bool = True
    include_structure: bool = True
    keyword_limit: int = Field(default=DEFAULT_KEYWORD_LIMIT, ge=1)


class ContentMetadata(BaseModel):
    title: str | None = None
    description: str | None = None
    author: str | None = None
    publish_date: datetime | None = None


class SemanticStructure(BaseModel):
    sections: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)


class ContentAnalysisResult(BaseModel):
    """Document statistics; disabled sub-analyses are left as None."""

    word_count: int = Field(default=0, ge=0)
    character_count: int = Field(default=0, ge=0)
    paragraph_count: int = Field(default=0, ge=0)
    heading_count: int = Field(default=0, ge=0)
    link_count: int = Field(default=0, ge=0)
    image_count: int = Field(default=0, ge=0)
    keywords: list[str] | None = None
    readability_score: float | None = Field(default=None, ge=0.0, le=100.0)
    language: str | None = None
    metadata: ContentMetadata | None = None
    structure: SemanticStructure | None = None
