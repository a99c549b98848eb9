"""Prometheus metrics for the indexer.

Every emission is best-effort: a broken metrics backend must never
fail a cycle, so errors are logged at debug and dropped.
"""

from __future__ import annotations

import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

log = logging.getLogger(__name__)


class IndexerMetrics:
    """Counters and gauges on a private CollectorRegistry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.events_total = Counter(
            "indexer_events_total", "Ledger writes that completed", registry=self.registry,
        )
        self.poison_total = Counter(
            "indexer_poison_total", "Events moved to poison storage", registry=self.registry,
        )
        self.decode_failures_total = Counter(
            "indexer_decode_failures_total", "Logs that failed to decode", registry=self.registry,
        )
        self.lag_blocks = Gauge(
            "indexer_lag_blocks", "Chain head minus last processed block", registry=self.registry,
        )
        self.retry_queue_length = Gauge(
            "indexer_retry_queue_length", "Events waiting in the retry buffer",
            registry=self.registry,
        )

    def serve(self, port: int) -> None:
        """Expose /metrics over HTTP. Port 0 disables the endpoint."""
        if not port:
            return
        start_http_server(port, registry=self.registry)
        log.info("Metrics listening on :%d", port)

    def record_event(self, count: int = 1) -> None:
        try:
            self.events_total.inc(count)
        except Exception as exc:
            log.debug("metrics: events_total failed: %s", exc)

    def record_poison(self, count: int = 1) -> None:
        try:
            self.poison_total.inc(count)
        except Exception as exc:
            log.debug("metrics: poison_total failed: %s", exc)

    def record_decode_failure(self, count: int = 1) -> None:
        try:
            self.decode_failures_total.inc(count)
        except Exception as exc:
            log.debug("metrics: decode_failures_total failed: %s", exc)

    def set_lag(self, blocks: int) -> None:
        try:
            self.lag_blocks.set(max(0, blocks))
        except Exception as exc:
            log.debug("metrics: lag_blocks failed: %s", exc)

    def set_retry_queue_length(self, depth: int) -> None:
        try:
            self.retry_queue_length.set(depth)
        except Exception as exc:
            log.debug("metrics: retry_queue_length failed: %s", exc)

    def sample(self, name: str) -> float | None:
        """Current value of a sample in this registry."""
        return self.registry.get_sample_value(name)
