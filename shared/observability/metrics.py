"""
Prometheus metrics configuration and utilities.

Provides standardized metrics for HTTP requests and for the mutation
pipeline: reconciliation, enqueueing and queue draining.
"""

from prometheus_client import REGISTRY as DEFAULT_REGISTRY
from prometheus_client import Counter, Gauge, Histogram, generate_latest

# HTTP Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["service", "method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["service", "method", "endpoint"],
)


# Mutation Pipeline Metrics
reconciliations_total = Counter(
    "reconciliations_total",
    "Total reconciliation passes",
    ["service", "outcome"],
)

rpc_calls_enqueued_total = Counter(
    "rpc_calls_enqueued_total",
    "Total write calls placed on the mutation queue",
    ["service", "queue"],
)

rpc_calls_executed_total = Counter(
    "rpc_calls_executed_total",
    "Total queued write calls executed against the ERP",
    ["service", "status"],
)

rpc_call_duration_seconds = Histogram(
    "rpc_call_duration_seconds",
    "Latency of executing one queued write call",
    ["service"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

queue_depth = Gauge(
    "mutation_queue_depth",
    "Last observed number of pending calls on the mutation queue",
    ["service", "queue"],
)


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus format.

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(DEFAULT_REGISTRY)
