"""Tests for logging setup and the Prometheus metrics recorder."""

import json
import logging

import pytest

from infra.logging_setup import JSONFormatter, configure_logging, resolve_level
from infra.metrics import CycleStats, MetricsRecorder


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_resolve_level_accepts_warn():
    assert resolve_level("warn") == logging.WARNING
    assert resolve_level("DEBUG") == logging.DEBUG
    with pytest.raises(ValueError):
        resolve_level("chatty")


def test_json_formatter_emits_one_object():
    record = logging.LogRecord("core.retry", logging.WARNING, __file__, 1, "Retrying %s", ("0xabc",), None)
    entry = json.loads(JSONFormatter().format(record))
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "core.retry"
    assert entry["message"] == "Retrying 0xabc"


def test_configure_logging_with_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "executor.log"
    configure_logging(level="debug", file=str(log_file), json_format=True)

    logging.getLogger("dca.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert json.loads(log_file.read_text().strip().splitlines()[-1])["message"] == "hello"


def test_metrics_recorders_are_independent():
    first = MetricsRecorder(enabled=True)
    second = MetricsRecorder(enabled=True)

    first.observe_cycle(CycleStats("partial", attempted=3, succeeded=2, failed=1, skipped=4, duration_seconds=0.5))

    assert first.registry.get_sample_value("dca_executions_total", {"outcome": "failure"}) == 1.0
    assert first.registry.get_sample_value("dca_cycle_duration_seconds_count") == 1.0
    assert second.registry.get_sample_value("dca_cycle_total", {"status": "partial"}) is None


def test_skip_reasons_are_labelled():
    metrics = MetricsRecorder(enabled=True)
    metrics.record_skip("too early")
    metrics.record_skip("too early")
    metrics.record_skip("inactive")

    assert metrics.registry.get_sample_value("dca_skipped_total", {"reason": "too early"}) == 2.0
    assert metrics.registry.get_sample_value("dca_skipped_total", {"reason": "inactive"}) == 1.0


def test_disabled_recorder_is_a_no_op():
    metrics = MetricsRecorder(enabled=False)
    metrics.record_skip("too early")
    metrics.record_dropped_tick()
    metrics.set_running(True)
    metrics.observe_cycle(CycleStats("ok", attempted=1, succeeded=1, failed=0, skipped=0, duration_seconds=0.1))

    assert not metrics.is_enabled()
    assert metrics.registry.get_sample_value("dca_skipped_total", {"reason": "too early"}) is None
