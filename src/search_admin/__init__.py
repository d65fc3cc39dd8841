"""
Retry-aware administrative client for REST-style search-engine APIs.

Issues index/resource creation, mapping updates and similar admin calls
through a shared retrying transport. A 400 reporting that the resource
already exists is retried instead of surfaced as a failure; every other
retry decision is left to the default exponential-backoff policy.

Architecture: httpx transport + tenacity retry loop + synchronous executor
"""

from search_admin.client import RequestExecutor, SearchAdminClient
from search_admin.models import ClientConfig, RequestSpec, Response, RetryDecision

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "RequestExecutor",
    "RequestSpec",
    "Response",
    "RetryDecision",
    "SearchAdminClient",
]
