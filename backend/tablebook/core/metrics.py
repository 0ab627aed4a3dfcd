"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_confirm_attempts_total',
    'Total reservation confirm attempts',
    ['status']  # success, replay, conflict, rejected, error
)

confirm_latency = Histogram(
    'reservation_confirm_latency_seconds',
    'Reservation confirm latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

hold_requests = Counter(
    'reservation_hold_requests_total',
    'Total hold requests',
    ['result']  # created, reused, conflict, rejected
)

status_transitions = Counter(
    'reservation_status_transitions_total',
    'Booking status transitions applied',
    ['from_status', 'to_status']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

event_publish_failures = Counter(
    'booking_event_publish_failures_total',
    'Booking events that could not be published'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(status: str):
    """Record confirm attempt. Status: success, replay, conflict, rejected, error"""
    reservation_attempts.labels(status=status).inc()


def record_hold(result: str):
    """Record hold request outcome."""
    hold_requests.labels(result=result).inc()


def record_transition(from_status: str, to_status: str):
    status_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
