"""Metrics — Prometheus metrics for wallet activity."""

from __future__ import annotations

from multisig_wallet.metrics.collector import MetricsCollector, WalletMetrics

__all__ = ["MetricsCollector", "WalletMetrics"]
