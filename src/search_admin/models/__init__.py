"""
Data models for the search admin client.

This package contains:
- http_models: Response, ClientConfig, RequestSpec, RetryDecision
"""

from search_admin.models.http_models import (
    ClientConfig,
    RequestSpec,
    Response,
    RetryDecision,
)

__all__ = [
    "ClientConfig",
    "RequestSpec",
    "Response",
    "RetryDecision",
]
