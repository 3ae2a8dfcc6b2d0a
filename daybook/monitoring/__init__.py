"""Monitoring infrastructure for daybook"""
from daybook.monitoring.sentry_config import init_sentry, capture_exception, set_user_context
from daybook.monitoring.prometheus_metrics import (
    metrics,
    record_request,
    track_cache_operation,
    track_snapshot,
    track_pruned,
    track_analytics_query,
    update_pool_metrics
)

__all__ = [
    "init_sentry",
    "capture_exception",
    "set_user_context",
    "metrics",
    "record_request",
    "track_cache_operation",
    "track_snapshot",
    "track_pruned",
    "track_analytics_query",
    "update_pool_metrics"
]
