"""Prometheus metrics collection."""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from pipeline_logs.core.logging import get_logger

logger = get_logger(__name__)


class MetricsCollector:
    """Collects and exposes Prometheus metrics."""

    def __init__(self) -> None:
        """Initialize metrics collectors."""
        # Query engine metrics
        self.log_queries_total = Counter(
            "log_queries_total",
            "Total log store queries issued",
            ["component"],
        )

        self.stale_responses_discarded_total = Counter(
            "stale_responses_discarded_total",
            "Responses dropped because a newer request superseded them",
            ["component"],
        )

        self.log_query_failures_total = Counter(
            "log_query_failures_total",
            "Total failed log store queries",
            ["component"],
        )

        self.log_query_duration_seconds = Histogram(
            "log_query_duration_seconds",
            "Time spent waiting for the log store",
            ["component"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 30.0],
        )

        # Order status metrics
        self.order_status_mutations_total = Counter(
            "order_status_mutations_total",
            "Order status change attempts by outcome",
            ["outcome"],
        )

        # API metrics
        self.api_requests_total = Counter(
            "api_requests_total",
            "Total API requests",
            ["method", "endpoint", "status_code"],
        )

        self.active_views = Gauge("active_views", "Number of live view sessions")

        logger.info("metrics_collector_initialized")

    def record_query(self, component: str, duration: float) -> None:
        """Record a completed or failed store query."""
        self.log_queries_total.labels(component=component).inc()
        self.log_query_duration_seconds.labels(component=component).observe(duration)

    def record_stale_response(self, component: str) -> None:
        """Record a discarded out-of-date response."""
        self.stale_responses_discarded_total.labels(component=component).inc()

    def record_query_failure(self, component: str) -> None:
        """Record a failed store query."""
        self.log_query_failures_total.labels(component=component).inc()

    def record_mutation(self, outcome: str) -> None:
        """Record an order status mutation outcome (applied/rejected/failed)."""
        self.order_status_mutations_total.labels(outcome=outcome).inc()

    def record_api_request(self, method: str, endpoint: str, status_code: int) -> None:
        """Record API request."""
        self.api_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()

    def set_active_views(self, count: int) -> None:
        """Set number of live views."""
        self.active_views.set(count)


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create global metrics collector."""
    global _metrics_collector

    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()

    return _metrics_collector


async def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
