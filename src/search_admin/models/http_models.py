"""
Data models for the request/response cycle against the search API.

These models stay deliberately generic: a response is a status code plus the
decoded JSON mapping. Interpreting index or mapping payloads is left to the
caller.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from search_admin.config import Settings


class Response(BaseModel):
    """
    Normalized result of an executed request.

    Produced once per request from the final HTTP response. `Response()` is
    the zero value (status 0, empty data).
    """
    model_config = ConfigDict(frozen=True)

    status: int = Field(default=0, ge=0, description="HTTP status code of the final response")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Decoded JSON object body (empty if the body was not a JSON object)"
    )

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status < 300


class ClientConfig(BaseModel):
    """
    Connection settings for one search cluster.

    Long-lived and read-only while requests execute. Credentials are only
    used when both username and password are non-empty.
    """
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(..., description="Cluster base URL (e.g., https://search:9200)")
    username: Optional[str] = Field(default=None, description="HTTP Basic username")
    password: Optional[str] = Field(default=None, repr=False, description="HTTP Basic password")

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ClientConfig":
        return cls(
            base_url=settings.SEARCH_BASE_URL,
            username=settings.SEARCH_USERNAME,
            password=settings.SEARCH_PASSWORD,
        )


class RequestSpec(BaseModel):
    """Caller-supplied description of a single request."""
    model_config = ConfigDict(frozen=True)

    method: str = Field(..., min_length=1, description="HTTP method (GET, PUT, POST, DELETE, ...)")
    endpoint: str = Field(..., description="Path appended to the base URL (e.g., /my-index)")
    body: bytes = Field(default=b"", description="Raw request payload")
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers applied over the defaults")


@dataclass(frozen=True)
class RetryDecision:
    """
    Outcome of inspecting one attempt.

    Attributes:
        retry: Whether the transport should re-attempt the request
        error: Error to surface instead of retrying (decision hook failure)
    """

    retry: bool
    error: Optional[Exception] = None
