"""Monitoring and metrics."""

from pipeline_logs.monitoring.metrics import MetricsCollector, get_metrics_collector

__all__ = ["MetricsCollector", "get_metrics_collector"]
