"""Tests for selector chain resolution and the extraction cache."""

import pytest

from patch_parser import (
    ExtractionEngine,
    HtmlDocument,
    ParserSettings,
    ValidationError,
)
from patch_parser.core.cache import CacheKeyGenerator, ExtractionCache


def test_first_matching_selector_wins(engine, document):
    card = document.select_one("#card-1")
    outcome = engine.resolve(document, [".missing", ".also-missing", "h2.title"], card)

    assert outcome.success
    assert outcome.selector_used == "h2.title"
    assert outcome.attempts == 3
    assert outcome.fallback_level == 2
    assert outcome.element_count == 1
    assert outcome.value.get_text() == "Patch Notes 14.2.1"
    assert outcome.used_fallback is False


def test_no_match_counts_every_selector(engine, document):
    card = document.select_one("#card-2")
    outcome = engine.resolve(document, [".x", ".y", ".z"], card)

    assert not outcome.success
    assert outcome.attempts == 3
    assert outcome.error is None
    assert outcome.value is None
    assert outcome.metadata["selectors_tried"] == [".x", ".y", ".z"]


def test_malformed_selector_is_skipped(engine, document):
    card = document.select_one("#card-1")
    outcome = engine.resolve(document, ["div[", "h2"], card)

    assert outcome.success
    assert outcome.selector_used == "h2"
    assert outcome.attempts == 2

    snapshot = engine.get_metrics_snapshot()
    assert snapshot.per_selector_success_rate["div["] == 0.0
    assert snapshot.per_selector_success_rate["h2"] == 1.0


def test_document_fallback_spends_one_attempt(engine, document):
    card = document.select_one("#card-2")
    outcome = engine.resolve(document, [".link"], card, fallback_to_document=True)

    assert outcome.success
    assert outcome.used_fallback
    assert outcome.attempts == 2
    assert outcome.fallback_level == 1
    assert outcome.value["href"].startswith("/en-us/news/")


def test_fallback_ignored_for_document_scope(engine, document):
    outcome = engine.resolve(document, [".nothing"], fallback_to_document=True)

    assert not outcome.success
    assert outcome.attempts == 1
    assert not outcome.used_fallback


def test_max_attempts_bounds_chain(engine, document):
    outcome = engine.resolve(document, [".x", "h2"], max_attempts=1)

    assert not outcome.success
    assert outcome.attempts == 1


@pytest.mark.parametrize("selectors", [[], [""], ["h2", "   "], "h2"])
def test_malformed_chain_raises(engine, document, selectors):
    with pytest.raises(ValidationError):
        engine.resolve(document, selectors)


def test_repeat_call_returns_cached_outcome(engine, document):
    card = document.select_one("#card-1")
    first = engine.resolve(document, ["h2"], card)
    second = engine.resolve(document, ["h2"], card)

    assert first is second
    snapshot = engine.get_metrics_snapshot()
    assert snapshot.total_ops == 1
    assert snapshot.cache_hits == 1
    assert snapshot.cache_misses == 1
    assert snapshot.cache_hit_ratio == 0.5


def test_failures_are_cached(engine, document):
    first = engine.resolve(document, [".missing"])
    second = engine.resolve(document, [".missing"])

    assert first is second
    assert engine.get_metrics_snapshot().fail_ops == 1


def test_cache_entry_expires(engine, document, clock):
    first = engine.resolve(document, ["h2"])
    clock.advance(engine.settings.cache_ttl_seconds + 1)
    second = engine.resolve(document, ["h2"])

    assert first is not second
    assert second.success
    assert engine.get_metrics_snapshot().cache_misses == 2


def test_chain_mutation_does_not_affect_call(engine, document):
    chain = ["h2"]
    outcome = engine.resolve(document, chain)
    chain.append(".other")

    assert engine.resolve(document, ["h2"]) is outcome


def test_caching_can_be_disabled(document):
    engine = ExtractionEngine(ParserSettings(enable_caching=False))
    first = engine.resolve(document, ["h2"])
    second = engine.resolve(document, ["h2"])

    assert first is not second
    assert engine.get_metrics_snapshot().total_ops == 2
    assert len(engine.cache) == 0


def test_clear_cache_reports_removed_entries(engine, document):
    engine.resolve(document, ["h2"])
    engine.resolve(document, ["h3"])

    assert engine.clear_cache() == 2
    assert len(engine.cache) == 0


def test_cache_key_format():
    key = CacheKeyGenerator.extraction_key("resolve", "abc123", ["h2", ".title"])
    assert key == "resolve:abc123:h2,.title"


def test_cache_entry_expiry_is_counted(clock):
    cache = ExtractionCache(ttl_seconds=10, clock=clock)
    cache.set("k", "value")

    assert cache.get_entry("k").value == "value"
    clock.advance(11)
    assert cache.get_entry("k") is None
    assert len(cache) == 0

    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["evictions"] == 1


def test_identical_containers_resolve_inside_their_own_scope(engine):
    card = '<div class="c"><h2>Patch 14.2</h2></div>'
    document = HtmlDocument(f"<html><body>{card}{card}</body></html>")
    first, second = document.select("div.c")

    out1 = engine.resolve(document, ["h2"], first)
    out2 = engine.resolve(document, ["h2"], second)

    assert out1.value.parent is first
    assert out2.value.parent is second
    assert engine.resolve(document, ["h2"], second) is out2


def test_cached_element_is_not_reused_across_documents(engine, sample_html):
    first_doc = HtmlDocument(sample_html)
    second_doc = HtmlDocument(sample_html)

    engine.resolve(first_doc, ["h2"])
    outcome = engine.resolve(second_doc, ["h2"])

    assert second_doc.contains(outcome.value)
    assert not first_doc.contains(outcome.value)
    assert engine.get_metrics_snapshot().cache_misses == 2


def test_cache_entries_are_immutable(clock):
    cache = ExtractionCache(clock=clock)
    entry = cache.set("k", 1, {"operation": "resolve"})

    with pytest.raises(AttributeError):
        entry.value = 2
    with pytest.raises(TypeError):
        entry.metadata["operation"] = "other"


def test_cache_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        ExtractionCache(ttl_seconds=0)
