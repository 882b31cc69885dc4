"""Metrics collector — Prometheus counters and histograms for wallet activity.

- ``multisig_proposals_total`` counter
- ``multisig_signatures_admitted_total`` counter
- ``multisig_signatures_rejected_total`` counter-vec (reason = error code)
- ``multisig_executions_total`` counter
- ``multisig_add_signature_seconds`` histogram
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

_PREFIX = "multisig"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`WalletMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class WalletMetrics:
    """High-level wallet metrics fed by :class:`MultisigWallet`."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._proposals = self._collector.counter(
            f"{_PREFIX}_proposals",
            "Transactions proposed to the wallet",
        )
        self._admitted = self._collector.counter(
            f"{_PREFIX}_signatures_admitted",
            "Signatures admitted to pending transactions",
        )
        self._rejected = self._collector.counter(
            f"{_PREFIX}_signatures_rejected",
            "Signatures rejected, by error code",
            ("reason",),
        )
        self._executions = self._collector.counter(
            f"{_PREFIX}_executions",
            "Transactions executed",
        )
        self._add_signature = self._collector.histogram(
            f"{_PREFIX}_add_signature_seconds",
            "Duration of signature admission, including verification",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def record_proposal(self) -> None:
        self._proposals.inc()

    def record_signature(self) -> None:
        self._admitted.inc()

    def record_rejection(self, reason: str) -> None:
        self._rejected.labels(reason=reason).inc()

    def record_execution(self) -> None:
        self._executions.inc()

    def observe_add_signature(self, seconds: float) -> None:
        self._add_signature.observe(seconds)
