"""Prometheus metrics are counted and never raise."""

from __future__ import annotations

from royalty_indexer.metrics import IndexerMetrics


class _Broken:
    def inc(self, *args):
        raise RuntimeError("registry gone")

    def set(self, *args):
        raise RuntimeError("registry gone")


def test_counters_and_gauges():
    m = IndexerMetrics()
    m.record_event()
    m.record_event(2)
    m.record_poison()
    m.set_lag(12)
    m.set_retry_queue_length(3)

    assert m.sample("indexer_events_total") == 3
    assert m.sample("indexer_poison_total") == 1
    assert m.sample("indexer_lag_blocks") == 12
    assert m.sample("indexer_retry_queue_length") == 3


def test_lag_never_negative():
    m = IndexerMetrics()
    m.set_lag(-4)
    assert m.sample("indexer_lag_blocks") == 0


def test_emission_errors_are_swallowed():
    m = IndexerMetrics()
    m.events_total = _Broken()
    m.lag_blocks = _Broken()

    m.record_event()
    m.set_lag(1)


def test_instances_do_not_share_registries():
    a, b = IndexerMetrics(), IndexerMetrics()
    a.record_event()
    assert b.sample("indexer_events_total") == 0


def test_port_zero_disables_endpoint():
    IndexerMetrics().serve(0)
