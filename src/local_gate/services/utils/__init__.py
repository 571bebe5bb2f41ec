"""Utility services (metrics)."""

from local_gate.services.utils.metrics import MetricsService, metrics_service

__all__ = ["MetricsService", "metrics_service"]
