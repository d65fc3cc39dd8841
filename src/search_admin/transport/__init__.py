"""
Retrying HTTP transport and retry decision engine.

Components:
- RetryableTransport: Shared httpx client wrapped in a tenacity retry loop
- check_retry: Decision hook retrying 400 "resource already exists"
- default_retry_policy: Fallback policy (transport errors, 429, 5xx)
- exceptions: Transport-level exceptions
"""

from search_admin.transport.exceptions import (
    RetryPolicyError,
    SearchClientError,
    SearchTimeoutError,
    SearchTransportError,
)
from search_admin.transport.policy import (
    RESOURCE_ALREADY_EXISTS,
    RetryPolicy,
    buffer_body,
    check_retry,
    default_retry_policy,
    extract_error_type,
)
from search_admin.transport.retryable import RetryableTransport, parse_retry_after

__all__ = [
    "RESOURCE_ALREADY_EXISTS",
    "RetryPolicy",
    "RetryPolicyError",
    "RetryableTransport",
    "SearchClientError",
    "SearchTimeoutError",
    "SearchTransportError",
    "buffer_body",
    "check_retry",
    "default_retry_policy",
    "extract_error_type",
    "parse_retry_after",
]
