"""Prometheus metrics for chainwatch."""

import logging
import threading
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

DEFAULT_METRICS_PORT = 8008

# Beacon API metrics
beacon_api_requests = Counter(
    "chainwatch_beacon_api_requests_total",
    "Total requests sent to the upstream Beacon API",
    ["endpoint"],
)

beacon_api_errors = Counter(
    "chainwatch_beacon_api_errors_total",
    "Total failed requests to the upstream Beacon API",
    ["endpoint", "error_type"],
)

beacon_api_latency = Histogram(
    "chainwatch_beacon_api_latency_seconds",
    "Upstream Beacon API request latency",
    ["endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Cache metrics
cache_hits = Counter(
    "chainwatch_cache_hits_total",
    "Cache lookups answered locally",
    ["index"],
)

cache_misses = Counter(
    "chainwatch_cache_misses_total",
    "Cache lookups not answered locally",
    ["index"],
)

cache_entries = Gauge(
    "chainwatch_cache_entries",
    "Number of live entries per cache index",
    ["index"],
)

backfilled_slots = Counter(
    "chainwatch_backfilled_slots_total",
    "Slots whose execution hash was inherited from an earlier slot",
)

# Head event metrics
head_events_received = Counter(
    "chainwatch_head_events_received_total",
    "Head events published to the consumer queue",
)

head_events_dropped = Counter(
    "chainwatch_head_events_dropped_total",
    "Head events dropped before reaching the consumer",
    ["reason"],
)

head_slot = Gauge(
    "chainwatch_head_slot",
    "Slot of the last published head event",
)

# Bootstrap metrics
bootstrap_failures = Counter(
    "chainwatch_bootstrap_failures_total",
    "Bootstrap steps that failed and were skipped",
    ["step"],
)


_server_started = False
_server_lock = threading.Lock()


def start_metrics_server(port: int = DEFAULT_METRICS_PORT) -> bool:
    """Start the Prometheus metrics HTTP server.

    Args:
        port: Port to listen on (default 8008)

    Returns:
        True if server started successfully, False if already running
    """
    global _server_started

    with _server_lock:
        if _server_started:
            logger.warning("Metrics server already running")
            return False

        try:
            start_http_server(port)
            _server_started = True
            logger.info(f"Prometheus metrics server started on port {port}")
            return True
        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False


def record_beacon_api_call(endpoint: str, latency: float, error: Optional[str] = None) -> None:
    """Record a Beacon API call.

    Args:
        endpoint: Endpoint name (e.g., 'proposer_duties', 'block')
        latency: Request latency in seconds
        error: Error type if the call failed, None if successful
    """
    beacon_api_requests.labels(endpoint=endpoint).inc()
    beacon_api_latency.labels(endpoint=endpoint).observe(latency)
    if error:
        beacon_api_errors.labels(endpoint=endpoint, error_type=error).inc()


def record_cache_lookup(index: str, hit: bool) -> None:
    if hit:
        cache_hits.labels(index=index).inc()
    else:
        cache_misses.labels(index=index).inc()


def update_cache_size(index: str, size: int) -> None:
    cache_entries.labels(index=index).set(size)


def record_backfill(slots: int) -> None:
    backfilled_slots.inc(slots)


def record_head_event(slot: int) -> None:
    head_events_received.inc()
    head_slot.set(slot)


def record_head_event_dropped(reason: str) -> None:
    head_events_dropped.labels(reason=reason).inc()


def record_bootstrap_failure(step: str) -> None:
    bootstrap_failures.labels(step=step).inc()
