"""Custom Prometheus metrics for the search admin client.

These metrics are registered in the default prometheus_client registry and
are exposed by whatever process embeds the client. Alert rules should be
configured for:
- search_transport_errors_total (cluster unreachable)
- search_retries_total (high retry rate indicates cluster instability)
"""

from prometheus_client import Counter, Histogram

# === Request Metrics ===

search_requests_total = Counter(
    "search_requests_total",
    "Total completed requests by method and final status code",
    ["method", "status"],
)
"""
Completed requests counter.

Labels:
- method: HTTP method (GET, PUT, POST, DELETE, ...)
- status: final HTTP status code as a string (e.g., "200", "404")
"""

search_request_latency_seconds = Histogram(
    "search_request_latency_seconds",
    "End-to-end request latency including all retry attempts",
    ["method"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# === Retry Metrics ===

search_retries_total = Counter(
    "search_retries_total",
    "Total retry attempts scheduled by reason",
    ["reason"],
)
"""
Retry attempts counter.

Labels:
- reason: already_exists (400 resource_already_exists_exception),
  status (retryable status such as 429 or 5xx), transport_error (no response)

Alert thresholds:
- WARN: retry rate > 10% of total requests
"""

# === Error Metrics ===

search_transport_errors_total = Counter(
    "search_transport_errors_total",
    "Total requests that failed without obtaining any response",
    ["error_type"],
)
