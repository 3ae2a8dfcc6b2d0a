"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager
from prometheus_client import Counter, Histogram, Gauge
from daybook.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        self._enabled = enabled
        if not enabled:
            logger.info("Prometheus metrics disabled")
            return

        # HTTP Request Metrics
        self.http_requests_total = Counter(
            'daybook_http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'daybook_http_request_duration_seconds',
            'HTTP request latency',
            ['method', 'endpoint'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
        )

        self.http_errors_total = Counter(
            'daybook_http_errors_total',
            'Total HTTP errors',
            ['method', 'endpoint', 'error_type']
        )

        # Database Metrics
        self.db_connection_pool_size = Gauge(
            'daybook_db_connection_pool_size',
            'Current database connection pool size'
        )

        self.db_connection_pool_available = Gauge(
            'daybook_db_connection_pool_available',
            'Available database connections in pool'
        )

        # Day state cache
        self.cache_operations_total = Counter(
            'daybook_cache_operations_total',
            'Total day state cache lookups',
            ['operation', 'result']
        )

        # Snapshots
        self.snapshots_saved_total = Counter(
            'daybook_snapshots_saved_total',
            'Snapshots written',
            ['source']
        )

        self.snapshots_pruned_total = Counter(
            'daybook_snapshots_pruned_total',
            'Snapshots deleted by retention'
        )

        # Analytics
        self.analytics_queries_total = Counter(
            'daybook_analytics_queries_total',
            'Analytics queries',
            ['series', 'group_by', 'status']
        )

        self.analytics_query_duration_seconds = Histogram(
            'daybook_analytics_query_duration_seconds',
            'Analytics query latency',
            ['series'],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
        )

        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


def record_request(method: str, endpoint: str, status_code: int, duration: float, error_type: str = None):
    """Record one finished HTTP request"""
    if not metrics.enabled:
        return

    metrics.http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration)

    metrics.http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status_code
    ).inc()

    if error_type:
        metrics.http_errors_total.labels(
            method=method,
            endpoint=endpoint,
            error_type=error_type
        ).inc()


def track_cache_operation(hit: bool, operation: str = "day_state"):
    """Track a day state cache lookup"""
    if not metrics.enabled:
        return

    metrics.cache_operations_total.labels(
        operation=operation,
        result="hit" if hit else "miss"
    ).inc()


def track_snapshot(source: str):
    """Track a snapshot write"""
    if not metrics.enabled:
        return

    metrics.snapshots_saved_total.labels(source=source).inc()


def track_pruned(count: int):
    """Track snapshots deleted by retention"""
    if metrics.enabled and count:
        metrics.snapshots_pruned_total.inc(count)


@contextmanager
def track_analytics_query(series: str, group_by: str):
    """Track analytics query count and latency"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status = "error"

    try:
        yield
        status = "success"
    finally:
        metrics.analytics_query_duration_seconds.labels(series=series).observe(time.time() - start_time)
        metrics.analytics_queries_total.labels(series=series, group_by=group_by, status=status).inc()


def update_pool_metrics(total: int, available: int):
    """Update database connection pool metrics"""
    if not metrics.enabled:
        return

    metrics.db_connection_pool_size.set(total)
    metrics.db_connection_pool_available.set(available)
