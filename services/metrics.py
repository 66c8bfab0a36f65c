"""
Prometheus Metrics Module
Version: 1.0.0

Application metrics for the orders service.

Usage:
    from services.metrics import record_adapter_call, record_transition

    record_adapter_call("regular", "fetch", success=True, duration_seconds=0.12)
    record_transition("pending", "confirmed", outcome="confirmed")
"""
from prometheus_client import Counter, Histogram, Info, REGISTRY
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response


# =============================================================================
# APPLICATION INFO
# =============================================================================

APP_INFO = Info(
    'orders_app',
    'Application information'
)


# =============================================================================
# REQUEST METRICS
# =============================================================================

REQUEST_DURATION = Histogram(
    'orders_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


# =============================================================================
# BOOKING SOURCE METRICS
# =============================================================================

ADAPTER_REQUESTS = Counter(
    'orders_adapter_requests_total',
    'Calls to booking sources',
    ['source', 'operation', 'outcome']
)

ADAPTER_DURATION = Histogram(
    'orders_adapter_duration_seconds',
    'Booking source call duration',
    ['source', 'operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

BOOKINGS_LOADED = Counter(
    'orders_bookings_loaded_total',
    'Bookings normalized from each source',
    ['source']
)

RECORDS_DROPPED = Counter(
    'orders_records_dropped_total',
    'Raw records dropped as malformed'
)


# =============================================================================
# LIFECYCLE METRICS
# =============================================================================

STATUS_TRANSITIONS = Counter(
    'orders_status_transitions_total',
    'Status transition attempts',
    ['from_status', 'to_status', 'outcome']  # outcome: confirmed, rejected, rolled_back
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metrics."""
    APP_INFO.info({
        'version': version,
        'environment': environment
    })


def record_adapter_call(source: str, operation: str, success: bool, duration_seconds: float):
    """Record one call to a booking source."""
    outcome = "success" if success else "error"
    ADAPTER_REQUESTS.labels(source=source, operation=operation, outcome=outcome).inc()
    ADAPTER_DURATION.labels(source=source, operation=operation).observe(duration_seconds)


def record_merge(loaded_by_source: dict, dropped: int):
    """Record the outcome of one merge of both sources."""
    for source, count in loaded_by_source.items():
        if count:
            BOOKINGS_LOADED.labels(source=source).inc(count)
    if dropped:
        RECORDS_DROPPED.inc(dropped)


def record_transition(from_status: str, to_status: str, outcome: str):
    """Record a status transition attempt."""
    STATUS_TRANSITIONS.labels(
        from_status=from_status,
        to_status=to_status,
        outcome=outcome
    ).inc()


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )
