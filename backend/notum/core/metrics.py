"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

REGISTRY = CollectorRegistry()

OPERATION_COUNT = Counter(
    "notum_operations_total",
    "Service operations executed",
    labelnames=("service", "operation"),
    registry=REGISTRY,
)

FLASHCARD_REVIEWS = Counter(
    "notum_flashcard_reviews_total",
    "Flashcard reviews by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

IMPORT_RECORDS = Counter(
    "notum_import_records_total",
    "Records processed by bundle imports",
    labelnames=("kind", "status"),
    registry=REGISTRY,
)

WORKER_REQUESTS = Counter(
    "notum_worker_requests_total",
    "Requests delegated to the processing worker",
    labelnames=("type", "outcome"),
    registry=REGISTRY,
)

PENDING_WORKER_REQUESTS = Gauge(
    "notum_worker_pending_requests",
    "Worker requests awaiting a response",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "OPERATION_COUNT",
    "FLASHCARD_REVIEWS",
    "IMPORT_RECORDS",
    "WORKER_REQUESTS",
    "PENDING_WORKER_REQUESTS",
    "metrics_response",
]
