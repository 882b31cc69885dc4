"""Tests for metrics module — MetricsCollector and WalletMetrics."""

from __future__ import annotations

from prometheus_client import CollectorRegistry

from multisig_wallet.metrics import MetricsCollector, WalletMetrics


class TestMetricsCollector:
    """Tests for the low-level MetricsCollector."""

    def test_creates_registry(self) -> None:
        c = MetricsCollector()
        assert c.registry is not None

    def test_custom_registry(self) -> None:
        reg = CollectorRegistry()
        c = MetricsCollector(registry=reg)
        assert c.registry is reg

    def test_histogram(self) -> None:
        reg = CollectorRegistry()
        c = MetricsCollector(registry=reg)
        h = c.histogram("test_hist", "A test histogram")
        h.observe(0.5)
        assert reg.get_sample_value("test_hist_sum") == 0.5

    def test_counter(self) -> None:
        reg = CollectorRegistry()
        c = MetricsCollector(registry=reg)
        ct = c.counter("test_counter", "A test counter")
        ct.inc()
        ct.inc(2)
        assert reg.get_sample_value("test_counter_total") == 3.0


class TestWalletMetrics:
    """Tests for the high-level WalletMetrics."""

    def test_independent_registries(self) -> None:
        a = WalletMetrics()
        b = WalletMetrics()
        a.record_proposal()
        assert a.registry.get_sample_value("multisig_proposals_total") == 1
        assert b.registry.get_sample_value("multisig_proposals_total") == 0

    def test_shared_collector(self) -> None:
        reg = CollectorRegistry()
        m = WalletMetrics(MetricsCollector(registry=reg))
        m.record_execution()
        assert m.registry is reg
        assert reg.get_sample_value("multisig_executions_total") == 1

    def test_record_signature(self) -> None:
        m = WalletMetrics()
        m.record_signature()
        m.record_signature()
        assert m.registry.get_sample_value("multisig_signatures_admitted_total") == 2

    def test_record_rejection_by_reason(self) -> None:
        m = WalletMetrics()
        m.record_rejection("invalid-signature")
        m.record_rejection("invalid-signature")
        m.record_rejection("duplicate-signature")
        reg = m.registry
        name = "multisig_signatures_rejected_total"
        assert reg.get_sample_value(name, {"reason": "invalid-signature"}) == 2
        assert reg.get_sample_value(name, {"reason": "duplicate-signature"}) == 1
        assert reg.get_sample_value(name, {"reason": "unauthorized-signer"}) is None

    def test_observe_add_signature(self) -> None:
        m = WalletMetrics()
        m.observe_add_signature(0.002)
        reg = m.registry
        assert reg.get_sample_value("multisig_add_signature_seconds_count") == 1
        assert reg.get_sample_value("multisig_add_signature_seconds_sum") == 0.002
