"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking operations',
    ['operation', 'status']  # get/create/modify x success/cannot_book/not_found
)

booking_rejections = Counter(
    'booking_rejections_total',
    'Allocation requests refused with 403',
    ['reason']  # ineligible, over_capacity, not_owner, no_booking, already_booked
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Render the default registry in Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(operation: str, status: str):
    """Record booking operation outcome. Status: success, cannot_book, not_found"""
    booking_attempts.labels(operation=operation, status=status).inc()


def record_rejection(reason: str):
    booking_rejections.labels(reason=reason).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
