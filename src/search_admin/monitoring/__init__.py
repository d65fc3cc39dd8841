"""
Monitoring and observability.

Prometheus metrics for requests, retries and transport failures.
"""

from search_admin.monitoring.metrics import (
    search_request_latency_seconds,
    search_requests_total,
    search_retries_total,
    search_transport_errors_total,
)

__all__ = [
    "search_request_latency_seconds",
    "search_requests_total",
    "search_retries_total",
    "search_transport_errors_total",
]
