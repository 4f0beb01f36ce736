"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total event registration attempts',
    ['result']  # success, duplicate, full, not_found
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Event registration latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

cancellations = Counter(
    'registration_cancellations_total',
    'Registrations cancelled'
)

# Ticket metrics
tickets_issued = Counter(
    'tickets_issued_total',
    'Tickets generated'
)

ticket_verifications = Counter(
    'ticket_verifications_total',
    'Ticket check-in attempts',
    ['result']  # checked_in, already_verified, inactive, not_found
)

# Outbound email
emails_sent = Counter(
    'emails_total',
    'Outbound email attempts',
    ['kind', 'result']  # kind: registration, check_in, announcement; result: sent, skipped, failed
)

# Event lock
event_lock_errors = Counter(
    'event_lock_errors_total',
    'Event lock backend errors (lock skipped, DB guards still apply)'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration_attempt(result: str):
    """Record registration attempt. Result: success, duplicate, full, not_found"""
    registration_attempts.labels(result=result).inc()


def record_ticket_verification(result: str):
    ticket_verifications.labels(result=result).inc()


def record_email(kind: str, result: str):
    emails_sent.labels(kind=kind, result=result).inc()
