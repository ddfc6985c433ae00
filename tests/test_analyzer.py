"""Tests for content analysis."""

import pytest

from patch_parser import ContentAnalysisOptions
from patch_parser.extraction.analyzer import (
    count_syllables,
    detect_language,
    extract_keywords,
    parse_publish_date,
    readability_score,
)


def test_counts(engine, document):
    result = engine.analyze(document)

    assert result.paragraph_count == 2
    assert result.heading_count == 2
    assert result.link_count == 2
    assert result.image_count == 2
    assert result.word_count > 0
    assert result.character_count > 0


def test_character_count_ignores_node_boundaries(engine, make_document):
    result = engine.analyze(make_document("<body><p>ab</p><p>cd</p></body>"))

    assert result.character_count == 4
    assert result.word_count == 2


def test_metadata_and_structure(engine, document):
    result = engine.analyze(document)

    assert result.metadata.title == "Patch Notes Hub"
    assert result.metadata.description == "Latest patch notes"
    assert result.metadata.author == "Riot Writer"
    assert result.metadata.publish_date.year == 2024

    assert result.structure.sections == ["news", "card-1", "card-2"]
    assert result.structure.topics == ["Patch Notes 14.2.1", "パッチ 14.3"]
    assert result.structure.entities == []


def test_disabled_parts_are_none(engine, document):
    options = ContentAnalysisOptions(
        include_keywords=False,
        include_readability=False,
        include_language=False,
        include_metadata=False,
        include_structure=False,
    )
    result = engine.analyze(document, options)

    assert result.keywords is None
    assert result.readability_score is None
    assert result.language is None
    assert result.metadata is None
    assert result.structure is None
    assert result.paragraph_count == 2


def test_analysis_is_recorded(engine, document):
    engine.analyze(document)
    assert engine.get_metrics_snapshot().per_operation_count["analyze"] == 1


def test_keywords_rank_by_frequency_then_first_seen():
    text = "Patch patch notes, notes NOTES! champion the and buff"
    assert extract_keywords(text, 10) == ["notes", "patch", "champion", "buff"]
    assert extract_keywords(text, 1) == ["notes"]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("パッチノート 14.2 のお知らせ", "ja"),
        ("Patch notes for the new season", "en"),
        ("Patch notes パ", "en"),
        ("   ", "unknown"),
        ("", "unknown"),
    ],
)
def test_detect_language(text, expected):
    assert detect_language(text) == expected


@pytest.mark.parametrize(
    "word, expected",
    [("cat", 1), ("table", 2), ("season", 2), ("rhythm", 1), ("14.2", 0)],
)
def test_count_syllables(word, expected):
    assert count_syllables(word) == expected


def test_readability_is_clamped():
    assert readability_score("") == 0.0
    assert readability_score("The cat sat. The dog ran.") == 100.0

    dense = (
        "Extraordinarily complicated international organizational "
        "responsibilities notwithstanding, administrators deliberated."
    )
    assert readability_score(dense) == 0.0


def test_readability_in_range_for_prose():
    text = "The patch changes many champions. Players should read every note."
    assert 0.0 < readability_score(text) < 100.0


@pytest.mark.parametrize(
    "value, year",
    [
        ("2024-01-10T12:00:00Z", 2024),
        ("2023/12/31", 2023),
        ("January 5, 2022", 2022),
    ],
)
def test_parse_publish_date(value, year):
    assert parse_publish_date(value).year == year


def test_parse_publish_date_rejects_garbage():
    assert parse_publish_date("yesterday") is None
    assert parse_publish_date("") is None
