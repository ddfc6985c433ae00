"""Tests for the title, URL, image and version extractors."""

import pytest

from patch_parser import ExtractionEngine, ParserSettings
from patch_parser.core.validators import ImageUrlValidator, ValidationRule
from patch_parser.extraction.fields import normalize_patch_title, parse_version


# Title


def test_title_from_first_selector(engine, document):
    card = document.select_one("#card-1")
    outcome = engine.extract_title(document, card, ["h2.title", "h3"])

    assert outcome.success
    assert outcome.value == "パッチノート 14.2.1"
    assert outcome.selector_used == "h2.title"
    assert outcome.attempts == 1
    assert outcome.metadata["raw_title"] == "Patch Notes 14.2.1"


def test_title_from_later_selector(engine, document):
    card = document.select_one("#card-2")
    outcome = engine.extract_title(document, card, ["h2", "h3"])

    assert outcome.value == "パッチノート 14.3"
    assert outcome.attempts == 2
    assert outcome.fallback_level == 1


def test_title_falls_back_to_container_text(engine, document):
    card = document.select_one("#card-3")
    outcome = engine.extract_title(document, card, [".missing"])

    assert outcome.success
    assert outcome.value == "パッチノート 14.4"
    assert outcome.selector_used == "container-text"
    assert outcome.used_fallback
    assert outcome.attempts == 2


def test_title_without_patch_text_fails(engine, make_document):
    document = make_document('<div class="c"><h2>Welcome back</h2></div>')
    container = document.select_one(".c")
    outcome = engine.extract_title(document, container, ["h2"])

    assert not outcome.success
    assert outcome.error == "No title found"
    assert outcome.attempts == 2


def test_title_fallback_disabled(make_document):
    engine = ExtractionEngine(ParserSettings(enable_fallback_search=False))
    document = make_document('<div class="c"><p>Patch 14.9</p></div>')
    container = document.select_one(".c")
    outcome = engine.extract_title(document, container, ["h2"])

    assert not outcome.success
    assert outcome.attempts == 1


def test_title_custom_template(document):
    engine = ExtractionEngine(ParserSettings(title_label_template="Patch {version}"))
    card = document.select_one("#card-1")

    assert engine.extract_title(document, card, ["h2"]).value == "Patch 14.2.1"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("パッチノート 14.2", "v14.2"),
        ("パッチ14.5", "v14.5"),
        ("Patch Notes 13.24.1", "v13.24.1"),
        ("patch 14.1 is live", "v14.1"),
        ("アップデート 2.3", "v2.3"),
        ("Update 7.10", "v7.10"),
        ("Champion spotlight", None),
        ("", None),
    ],
)
def test_normalize_patch_title(text, expected):
    assert normalize_patch_title(text, "v{version}") == expected


# URL


def test_url_from_link_container(engine, document):
    card = document.select_one("#card-3")
    outcome = engine.extract_url(document, card, ["a.link"])

    assert outcome.value == "https://example.com/patch-14-4"
    assert outcome.selector_used == "container-href"
    assert outcome.attempts == 1


def test_url_from_chain_is_normalized_in_metadata(engine, document):
    card = document.select_one("#card-1")
    outcome = engine.extract_url(document, card, ["a.missing", "a.link"])

    assert outcome.value == "/en-us/news/game-updates/patch-14-2-notes/"
    assert outcome.attempts == 2
    assert outcome.metadata["normalized_url"] == (
        "https://www.leagueoflegends.com/en-us/news/game-updates/patch-14-2-notes/"
    )


def test_url_document_fallback_requires_keyword(engine, document):
    card = document.select_one("#card-2")
    outcome = engine.extract_url(document, card, ["a.link"])

    assert outcome.success
    assert outcome.used_fallback
    assert outcome.attempts == 2
    assert "patch" in outcome.value


def test_url_fallback_rejects_off_topic_links(engine, make_document):
    document = make_document(
        '<div class="c"><span>No link</span></div>'
        '<a class="more" href="/esports/schedule">Schedule</a>'
    )
    container = document.select_one(".c")
    outcome = engine.extract_url(document, container, ["a.more"])

    assert not outcome.success
    assert outcome.error == "No URL found"
    assert outcome.attempts == 2


# Image


def test_image_from_src(engine, document):
    card = document.select_one("#card-1")
    outcome = engine.extract_image_url(document, card, ["img.thumb"])

    assert outcome.value == "https://cdn.example.com/patch-14-2.jpg"
    assert outcome.attempts == 1


def test_image_from_data_src(engine, document):
    card = document.select_one("#card-2")
    outcome = engine.extract_image_url(document, card, ["img.thumb"])

    assert outcome.value == "https://cdn.example.com/news-14-3.png"


def test_image_rejected_candidate_then_document_fallback(engine, make_document):
    document = make_document(
        '<div id="c"><img class="thumb" src="/local.png"></div>'
        '<img class="thumb" src="https://cdn.example.com/patch-banner.png">'
    )
    container = document.select_one("#c")
    outcome = engine.extract_image_url(document, container, ["img.thumb"])

    assert outcome.success
    assert outcome.used_fallback
    assert outcome.value == "https://cdn.example.com/patch-banner.png"
    assert outcome.attempts == 2


def test_image_failure_lists_rejected_candidates(make_document):
    engine = ExtractionEngine(ParserSettings(enable_fallback_search=False))
    document = make_document('<div id="c"><img src="/local.png"></div>')
    container = document.select_one("#c")
    outcome = engine.extract_image_url(document, container, ["img"])

    assert not outcome.success
    assert outcome.metadata["rejected_candidates"] == ["/local.png"]


def test_image_custom_validator(make_document):
    validator = ImageUrlValidator(
        custom_rules=[
            ValidationRule(
                name="cdn_only",
                validator=lambda url: "cdn.example.com" in url,
                error_message="Image must come from the CDN",
            )
        ]
    )
    engine = ExtractionEngine(
        ParserSettings(enable_fallback_search=False), image_validator=validator
    )
    document = make_document('<div id="c"><img src="https://other.com/a.png"></div>')
    outcome = engine.extract_image_url(document, document.select_one("#c"), ["img"])

    assert not outcome.success


# Version


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Patch Notes 14.2.1", "14.2.1"),
        ("v14.3", "14.3"),
        ("パッチノート 13.24", "13.24"),
        ("Version 2.0 release", "2.0"),
    ],
)
def test_extract_version(engine, title, expected):
    assert engine.extract_version(title) == expected


def test_version_synthesized_from_date(engine, fixed_today):
    outcome = engine.extract_version_outcome("Champion spotlight")

    assert outcome.success
    assert outcome.value == fixed_today.strftime("%Y.%m.%d")
    assert outcome.used_fallback
    assert outcome.metadata["synthesized"] is True
    assert engine.extract_version("No digits here") == "2024.05.17"


def test_version_outcome_marks_real_versions(engine):
    outcome = engine.extract_version_outcome("Patch 14.2")

    assert outcome.metadata["synthesized"] is False
    assert not outcome.used_fallback


def test_parse_version_handles_non_strings():
    assert parse_version(None) is None


# URL normalization


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a", "https://example.com/a"),
        ("HTTP://example.com/a", "HTTP://example.com/a"),
        ("//cdn.example.com/x.png", "https://cdn.example.com/x.png"),
        ("/en-us/news/", "https://www.leagueoflegends.com/en-us/news/"),
        ("news/patch", "https://www.leagueoflegends.com/news/patch"),
        ("", ""),
        (None, ""),
        (42, ""),
    ],
)
def test_normalize_url(engine, url, expected):
    assert engine.normalize_url(url) == expected


def test_normalize_url_uses_configured_origin():
    engine = ExtractionEngine(
        ParserSettings(base_origin="http://localhost:8000/", default_scheme="http")
    )

    assert engine.normalize_url("/a") == "http://localhost:8000/a"
    assert engine.normalize_url("//h/b") == "http://h/b"
