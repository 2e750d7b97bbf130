"""Prometheus metrics for chainwatch."""

from .metrics import (
    DEFAULT_METRICS_PORT,
    start_metrics_server,
    record_beacon_api_call,
    record_cache_lookup,
    update_cache_size,
    record_backfill,
    record_head_event,
    record_head_event_dropped,
    record_bootstrap_failure,
)

__all__ = [
    "DEFAULT_METRICS_PORT",
    "start_metrics_server",
    "record_beacon_api_call",
    "record_cache_lookup",
    "update_cache_size",
    "record_backfill",
    "record_head_event",
    "record_head_event_dropped",
    "record_bootstrap_failure",
]
