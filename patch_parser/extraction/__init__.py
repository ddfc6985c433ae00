"""
Extraction components: selector resolution, field extractors, pattern
matching, task scheduling, streaming and content analysis.
"""

from .analyzer import ContentAnalyzer
from .fields import FieldExtractor, normalize_patch_title, parse_version
from .patterns import PatternMatcher, calculate_confidence, element_position
from .resolver import SelectorProbe, SelectorResolver
from .scheduler import TaskScheduler, plan_batches
from .streaming import ExtractionStream, StreamProcessor

__all__ = [
    "ContentAnalyzer",
    "ExtractionStream",
    "FieldExtractor",
    "PatternMatcher",
    "SelectorProbe",
    "SelectorResolver",
    "StreamProcessor",
    "TaskScheduler",
    "calculate_confidence",
    "element_position",
    "normalize_patch_title",
    "parse_version",
    "plan_batches",
]
