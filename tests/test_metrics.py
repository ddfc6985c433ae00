"""Tests for the metrics recorder and engine-level metrics."""

import pytest

from patch_parser.core.metrics import MetricsRecorder


def test_snapshot_aggregates_operations():
    recorder = MetricsRecorder()
    recorder.record_operation("resolve", True, 0.2)
    recorder.record_operation("resolve", False, 0.4, used_fallback=True)
    recorder.record_operation("title", True, 0.6)

    snapshot = recorder.snapshot()
    assert snapshot.total_ops == 3
    assert snapshot.success_ops == 2
    assert snapshot.fail_ops == 1
    assert snapshot.average_elapsed_time == pytest.approx(0.4)
    assert snapshot.fallback_usage_rate == pytest.approx(1 / 3)
    assert dict(snapshot.per_operation_count) == {"resolve": 2, "title": 1}
    assert snapshot.success_rate == pytest.approx(2 / 3)


def test_selector_rates():
    recorder = MetricsRecorder()
    recorder.record_selector("h2", True)
    recorder.record_selector("h2", False)
    recorder.record_selector(".title", False)

    snapshot = recorder.snapshot()
    assert snapshot.per_selector_success_rate == {"h2": 0.5, ".title": 0.0}
    assert snapshot.per_selector_attempts == {"h2": 2, ".title": 1}


def test_snapshot_is_read_only_and_detached():
    recorder = MetricsRecorder()
    recorder.record_operation("resolve", True, 0.1)
    snapshot = recorder.snapshot()

    with pytest.raises(TypeError):
        snapshot.per_operation_count["resolve"] = 5
    with pytest.raises(AttributeError):
        snapshot.total_ops = 10

    recorder.record_operation("resolve", True, 0.1)
    assert snapshot.total_ops == 1


def test_cache_hit_ratio():
    recorder = MetricsRecorder()
    assert recorder.snapshot().cache_hit_ratio == 0.0

    recorder.record_cache_miss()
    recorder.record_cache_hit()
    recorder.record_cache_hit()
    assert recorder.snapshot().cache_hit_ratio == pytest.approx(2 / 3)


def test_disabled_recorder_keeps_zeroes():
    recorder = MetricsRecorder(enabled=False)
    recorder.record_operation("resolve", True, 0.1)
    recorder.record_selector("h2", True)
    recorder.record_cache_hit()

    snapshot = recorder.snapshot()
    assert snapshot.total_ops == 0
    assert snapshot.cache_hits == 0
    assert dict(snapshot.per_selector_attempts) == {}


def test_reset_clears_counters(engine, document):
    engine.resolve(document, ["h2"])
    engine.extract_version("Patch 14.2")
    assert engine.get_metrics_snapshot().total_ops == 2

    engine.reset_metrics()
    snapshot = engine.get_metrics_snapshot()
    assert snapshot.total_ops == 0
    assert snapshot.to_dict()["per_selector_attempts"] == {}


def test_service_info(engine, document):
    engine.resolve(document, ["h2"])
    info = engine.get_service_info()

    assert info["version"]
    assert info["uptime_seconds"] >= 0
    assert info["cache"]["size"] == 1
    assert info["metrics"]["total_ops"] == 1
    assert info["settings"]["max_selector_attempts"] == 10
