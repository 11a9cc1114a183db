"""
Prometheus metrics for the POS API.

HTTP traffic is recorded by request hooks; the sale workflow bumps the
business counters directly. GET /metrics is unauthenticated, keep it on the
internal network.
"""
import os
import time

from flask import Blueprint, Response, request, g
from prometheus_client import (
    Counter, Histogram, Gauge, CollectorRegistry, REGISTRY, CONTENT_TYPE_LATEST,
    generate_latest, multiprocess
)

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = 'PROMETHEUS_MULTIPROC_DIR' in os.environ

LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def _registry():
    if MULTIPROCESS_MODE:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY


def _metric_kwargs():
    # In multiprocess mode metrics must not bind to a registry at definition time
    return {'registry': None} if MULTIPROCESS_MODE else {}


http_requests_total = Counter(
    'pos_http_requests_total',
    'HTTP requests served, by route and status',
    ['method', 'route', 'status'],
    **_metric_kwargs()
)

http_request_seconds = Histogram(
    'pos_http_request_duration_seconds',
    'HTTP request latency in seconds, by route',
    ['method', 'route'],
    buckets=LATENCY_BUCKETS,
    **_metric_kwargs()
)

http_requests_in_flight = Gauge(
    'pos_http_requests_in_flight',
    'HTTP requests currently being handled',
    multiprocess_mode='livesum',
    **_metric_kwargs()
)

sales_created_total = Counter(
    'pos_sales_created_total',
    'Sales committed by the sale creation workflow',
    **_metric_kwargs()
)

receipt_notifications_total = Counter(
    'pos_receipt_notifications_total',
    'Receipt notifications dispatched, by outcome',
    ['result'],
    **_metric_kwargs()
)


def _route_label() -> str:
    """URL rule ('/api/sales/<int:sale_id>') so label cardinality stays bounded."""
    if request.url_rule is not None:
        return request.url_rule.rule
    return 'unmatched'


def setup_metrics_instrumentation(app):
    """Register request hooks that feed the HTTP metrics."""

    @app.before_request
    def start_request_timer():
        g.metrics_started_at = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def record_request(response):
        started_at = g.pop('metrics_started_at', None)
        if started_at is None:
            return response

        route = _route_label()
        http_request_seconds.labels(request.method, route).observe(time.perf_counter() - started_at)
        http_requests_total.labels(request.method, route, str(response.status_code)).inc()
        http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(_registry()), mimetype=CONTENT_TYPE_LATEST)
