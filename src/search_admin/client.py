"""
Request executor for administrative calls against the search API.

`RequestExecutor.execute` is a blocking call. The network exchange, with
every retry, runs on a worker thread; the caller waits on a single Future
and only ever sees a fully read and decoded Response.

HTTP-level failures (404, 409, a final 400, ...) come back as a normal
Response. Only delivery failures, where no response was obtained, raise
SearchTransportError.
"""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Mapping, Optional, Union

import httpx
import structlog

from search_admin.config import Settings
from search_admin.logging_config import configure_logging
from search_admin.models.http_models import ClientConfig, RequestSpec, Response
from search_admin.monitoring.metrics import (
    search_request_latency_seconds,
    search_requests_total,
)
from search_admin.transport.exceptions import SearchTimeoutError, SearchTransportError
from search_admin.transport.retryable import RetryableTransport


logger = structlog.get_logger(__name__)


USER_AGENT = "search-admin-client/0.1.0"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
}

Body = Union[bytes, str, Mapping[str, Any], list, None]


def _decode_json_object(content: bytes) -> Dict[str, Any]:
    """Decode a body into a JSON object; anything else decodes to {}."""
    if not content:
        return {}
    try:
        data = json.loads(content)
    except ValueError as e:
        logger.debug("Response body is not valid JSON", error=str(e), body_size=len(content))
        return {}
    if not isinstance(data, dict):
        logger.debug("Response body is not a JSON object", json_type=type(data).__name__)
        return {}
    return data


def encode_body(body: Body) -> bytes:
    """Encode a request body: bytes pass through, str is UTF-8, mappings/lists become JSON."""
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


class RequestExecutor:
    """
    Executes RequestSpecs through a shared RetryableTransport.

    Holds no per-request state: the transport and the worker pool are shared,
    ClientConfig is read-only and each RequestSpec/Response belongs to a
    single call, so concurrent `execute` calls need no locking.
    """

    def __init__(
        self,
        transport: RetryableTransport,
        max_workers: int = 8,
        metrics_enabled: bool = True,
    ):
        self._transport = transport
        self.metrics_enabled = metrics_enabled
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="search-admin",
        )

    def _build_request(self, config: ClientConfig, spec: RequestSpec) -> httpx.Request:
        headers = httpx.Headers(DEFAULT_HEADERS)
        for key, value in spec.headers.items():
            headers[key] = value

        try:
            return self._transport.build_request(
                spec.method,
                config.base_url + spec.endpoint,
                spec.body,
                headers=headers,
            )
        except httpx.InvalidURL as e:
            raise SearchTransportError(
                f"Invalid request URL: {e}",
                details={"base_url": config.base_url, "endpoint": spec.endpoint},
            ) from e

    def _exchange(self, request: httpx.Request, auth: Optional[httpx.Auth]) -> Response:
        """Worker side: send, read the final body once, decode it."""
        http_response = self._transport.send(request, auth=auth)
        try:
            content = http_response.read()
        except httpx.TimeoutException as e:
            raise SearchTimeoutError(
                f"Timed out reading response body: {e}",
                details={"url": str(request.url), "status": http_response.status_code},
            ) from e
        except (httpx.HTTPError, httpx.StreamError) as e:
            # StreamError: the body broke while the retry hook was buffering it
            raise SearchTransportError(
                f"Failed to read response body: {e}",
                details={
                    "url": str(request.url),
                    "status": http_response.status_code,
                    "error_type": type(e).__name__,
                },
            ) from e
        finally:
            http_response.close()

        return Response(status=http_response.status_code, data=_decode_json_object(content))

    def execute(self, config: ClientConfig, spec: RequestSpec) -> Response:
        """
        Execute a request and wait for its final outcome.

        Args:
            config: Target cluster and optional credentials
            spec: Method, endpoint, body and headers of the request

        Returns:
            Response with the final status code and decoded JSON body,
            whatever the status code

        Raises:
            SearchTransportError: No response was obtained
            RetryPolicyError: The retry decision hook reported an error
        """
        start_time = time.time()
        request = self._build_request(config, spec)

        # Blank username or password means no credentials at all
        auth = (
            httpx.BasicAuth(config.username, config.password)
            if config.has_credentials
            else None
        )

        logger.debug(
            "Submitting request",
            method=request.method,
            endpoint=spec.endpoint,
            body_size=len(spec.body),
            authenticated=auth is not None,
        )

        future = self._pool.submit(self._exchange, request, auth)
        try:
            response = future.result()
        except SearchTransportError as e:
            logger.error(
                "Request failed without a response",
                method=request.method,
                endpoint=spec.endpoint,
                error=e.message,
            )
            raise

        latency = time.time() - start_time
        if self.metrics_enabled:
            search_requests_total.labels(method=request.method, status=str(response.status)).inc()
            search_request_latency_seconds.labels(method=request.method).observe(latency)

        logger.info(
            "Request completed",
            method=request.method,
            endpoint=spec.endpoint,
            status=response.status,
            latency_ms=int(latency * 1000),
        )
        return response

    def close(self) -> None:
        """Wait for in-flight requests and stop the worker pool."""
        self._pool.shutdown(wait=True)

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SearchAdminClient:
    """
    Client bound to one cluster configuration.

    Example:
        client = SearchAdminClient.from_settings(settings)
        response = client.make_request("PUT", "/my-index", {"settings": {...}})
        if response.status == 200:
            ...
    """

    def __init__(self, config: ClientConfig, executor: RequestExecutor):
        self.config = config
        self._executor = executor
        self._owned: list = []

    @classmethod
    def from_settings(cls, settings: Settings, configure_logs: bool = True) -> "SearchAdminClient":
        """
        Build a client that owns its transport and worker pool.

        Args:
            settings: Application settings
            configure_logs: Install the structlog handler for this package
                (LOG_LEVEL / ENVIRONMENT); pass False when the embedding
                application configures logging itself
        """
        if configure_logs:
            configure_logging(settings)
        transport = RetryableTransport.from_settings(settings)
        executor = RequestExecutor(
            transport,
            max_workers=settings.EXECUTOR_MAX_WORKERS,
            metrics_enabled=settings.PROMETHEUS_ENABLED,
        )
        client = cls(ClientConfig.from_settings(settings), executor)
        client._owned = [executor, transport]
        return client

    def make_request(
        self,
        method: str,
        endpoint: str,
        body: Body = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        """Issue `method endpoint` against the configured cluster."""
        spec = RequestSpec(
            method=method,
            endpoint=endpoint,
            body=encode_body(body),
            headers=headers or {},
        )
        return self._executor.execute(self.config, spec)

    def close(self) -> None:
        for resource in self._owned:
            resource.close()
        self._owned = []

    def __enter__(self) -> "SearchAdminClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.config.base_url})"
