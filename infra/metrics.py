"""Prometheus-backed metrics hooks for the scheduler and cycle runner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Summary, start_http_server

logger = logging.getLogger(__name__)


@dataclass
class CycleStats:
    status: str
    attempted: int
    succeeded: int
    failed: int
    skipped: int
    duration_seconds: float


class MetricsRecorder:
    """
    Expose executor stats via Prometheus.

    Each recorder owns its own CollectorRegistry, so several schedulers (or
    tests) can create recorders without duplicate-registration errors.
    """

    def __init__(self, enabled: bool = True, port: int = 9100, registry: Optional[CollectorRegistry] = None) -> None:
        self._enabled = bool(enabled)
        self._port = port
        self._started = False
        self.registry = registry or CollectorRegistry()

        if not self._enabled:
            self._cycle_summary = None
            self._cycle_counter = None
            self._execution_counter = None
            self._skip_counter = None
            self._dropped_tick_counter = None
            self._running_gauge = None
            return

        self._cycle_summary = Summary(
            "dca_cycle_duration_seconds",
            "Duration of a full execution cycle",
            registry=self.registry,
        )
        self._cycle_counter = Counter(
            "dca_cycle_total",
            "Total execution cycles by status",
            labelnames=("status",),
            registry=self.registry,
        )
        self._execution_counter = Counter(
            "dca_executions_total",
            "Account executions by outcome",
            labelnames=("outcome",),
            registry=self.registry,
        )
        self._skip_counter = Counter(
            "dca_skipped_total",
            "Accounts skipped, grouped by reason",
            labelnames=("reason",),
            registry=self.registry,
        )
        self._dropped_tick_counter = Counter(
            "dca_dropped_ticks_total",
            "Timer ticks dropped because a cycle was still running",
            registry=self.registry,
        )
        self._running_gauge = Gauge(
            "dca_cycle_running",
            "1 while a cycle is in progress",
            registry=self.registry,
        )

    def start(self) -> None:
        if not self._enabled or self._started:
            return
        try:
            start_http_server(self._port, registry=self.registry)
        except OSError as exc:
            self._enabled = False
            logger.error("Failed to start metrics exporter on port %s: %s", self._port, exc)
            return
        self._started = True
        logger.info("Prometheus metrics exporter listening on 0.0.0.0:%s", self._port)

    def is_enabled(self) -> bool:
        return self._enabled

    def set_running(self, running: bool) -> None:
        if self._enabled and self._running_gauge:
            self._running_gauge.set(1 if running else 0)

    def observe_cycle(self, stats: CycleStats) -> None:
        if self._enabled:
            assert self._cycle_summary and self._cycle_counter and self._execution_counter
            self._cycle_summary.observe(stats.duration_seconds)
            self._cycle_counter.labels(status=stats.status).inc()
            self._execution_counter.labels(outcome="success").inc(stats.succeeded)
            self._execution_counter.labels(outcome="failure").inc(stats.failed)

    def record_skip(self, reason: str) -> None:
        if self._enabled and self._skip_counter:
            # reasons are a small fixed set, label cardinality stays bounded
            self._skip_counter.labels(reason=reason).inc()

    def record_dropped_tick(self) -> None:
        if self._enabled and self._dropped_tick_counter:
            self._dropped_tick_counter.inc()

