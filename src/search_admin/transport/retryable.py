"""
Retryable HTTP transport shared by every request.

Wraps one persistent httpx.Client (connection pool + TLS configuration) with a
tenacity retry loop. Each attempt is handed to a pluggable decision hook
(`check_retry` by default) that sees either the response or the transport
error and decides whether to try again.

Features:
- Exponential backoff with jitter, bounded by retry_wait_min/retry_wait_max
- Retry-After honoured on 429/503 responses
- Responses from discarded attempts are closed before sleeping
- The final response is returned even when the retry budget runs out
"""

import ssl
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Union

import httpx
import structlog
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_exponential_jitter
from tenacity.retry import retry_base
from tenacity.wait import wait_base

from search_admin.config import Settings
from search_admin.monitoring.metrics import search_retries_total, search_transport_errors_total
from search_admin.transport.exceptions import (
    RetryPolicyError,
    SearchTimeoutError,
    SearchTransportError,
)
from search_admin.transport.policy import RetryPolicy, check_retry, default_retry_policy


logger = structlog.get_logger(__name__)


RETRY_AFTER_STATUSES = frozenset({429, 503})


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header value (delta-seconds or HTTP-date).

    Returns the delay in seconds, or None if absent or unparsable.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


class RetryAfterWait(wait_base):
    """
    Wait strategy preferring the server's Retry-After hint.

    Falls back to the wrapped strategy when the outcome is an error, the
    status is not 429/503, or the header is missing.
    """

    def __init__(self, fallback: wait_base, max_wait: float):
        self._fallback = fallback
        self._max_wait = max_wait

    def __call__(self, retry_state: RetryCallState) -> float:
        fallback_delay = float(self._fallback(retry_state))

        outcome = retry_state.outcome
        if outcome is None or outcome.failed:
            return fallback_delay

        response = outcome.result()
        if response.status_code not in RETRY_AFTER_STATUSES:
            return fallback_delay

        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        if retry_after is None:
            return fallback_delay
        return min(retry_after, self._max_wait)


class _RetryIfPolicy(retry_base):
    """Adapts a RetryPolicy hook to tenacity's retry predicate interface."""

    def __init__(self, policy: RetryPolicy):
        self._policy = policy

    def __call__(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None:
            return False

        if outcome.failed:
            error = outcome.exception()
            if not isinstance(error, httpx.HTTPError):
                # Not a transport failure, let it propagate untouched
                return False
            decision = self._policy(None, error)
            response = None
        else:
            response = outcome.result()
            decision = self._policy(response, None)

        if decision.error is not None:
            if response is not None:
                response.close()
            raise RetryPolicyError(
                f"Retry decision failed: {decision.error}",
                details={
                    "attempt": retry_state.attempt_number,
                    "error_type": type(decision.error).__name__,
                },
            ) from decision.error

        return decision.retry


def _retry_reason(retry_state: RetryCallState) -> str:
    outcome = retry_state.outcome
    if outcome is None or outcome.failed:
        return "transport_error"
    if outcome.result().status_code == 400:
        return "already_exists"
    return "status"


class RetryableTransport:
    """
    Process-wide retrying transport.

    Create it once at startup (see `from_settings`) and share it between all
    executors; the underlying httpx.Client is safe for concurrent use and
    there is no other mutable state.

    Attributes:
        max_attempts: Total attempts per request, first try included
        retry_wait_min: Minimum wait between attempts (seconds)
        retry_wait_max: Maximum wait between attempts (seconds)
        check_retry: Decision hook applied to every attempt
        default_retry_policy: Fallback policy used by the default hook
    """

    default_retry_policy: RetryPolicy = staticmethod(default_retry_policy)

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        verify: Union[bool, str] = True,
        limits: Optional[httpx.Limits] = None,
        max_attempts: int = 5,
        retry_wait_min: float = 0.2,
        retry_wait_max: float = 30.0,
        check_retry: RetryPolicy = check_retry,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        metrics_enabled: bool = True,
    ):
        """
        Initialize the transport.

        Args:
            timeout: Per-attempt timeout in seconds
            verify: True to verify certificates, False to skip verification,
                or a path to a CA bundle
            limits: httpx connection pool limits (default: 20 max connections)
            max_attempts: Total attempts per request, first try included
            retry_wait_min: Minimum wait between attempts (seconds)
            retry_wait_max: Maximum wait between attempts (seconds)
            check_retry: Decision hook invoked with each response/error
            transport: Optional httpx transport (e.g., httpx.MockTransport)
            sleep: Sleep function used between attempts
            metrics_enabled: Record retry and transport-error metrics
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if retry_wait_min < 0:
            raise ValueError("retry_wait_min must be >= 0")
        if retry_wait_max < retry_wait_min:
            raise ValueError("retry_wait_max must be >= retry_wait_min")

        if limits is None:
            limits = httpx.Limits(
                max_keepalive_connections=10,
                max_connections=20,
                keepalive_expiry=30.0,
            )

        if verify is False:
            logger.warning("TLS certificate verification is disabled")
        tls_verify: Union[bool, ssl.SSLContext] = (
            ssl.create_default_context(cafile=verify) if isinstance(verify, str) else verify
        )

        self.max_attempts = max_attempts
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max
        self.check_retry = check_retry
        self.metrics_enabled = metrics_enabled
        self._sleep = sleep
        self._wait = RetryAfterWait(
            wait_exponential_jitter(
                multiplier=retry_wait_min,
                max=retry_wait_max,
                jitter=retry_wait_min,
            ),
            max_wait=retry_wait_max,
        )
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            verify=tls_verify,
            transport=transport,
            follow_redirects=True,
        )

        logger.info(
            "Retryable transport initialized",
            timeout=timeout,
            max_attempts=max_attempts,
            retry_wait_min=retry_wait_min,
            retry_wait_max=retry_wait_max,
            tls_verify=verify is not False,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RetryableTransport":
        """Build the shared transport from application settings."""
        verify: Union[bool, str] = settings.TLS_VERIFY
        if settings.TLS_VERIFY and settings.TLS_CA_BUNDLE:
            verify = settings.TLS_CA_BUNDLE
        kwargs.setdefault("metrics_enabled", settings.PROMETHEUS_ENABLED)
        return cls(
            timeout=settings.HTTP_TIMEOUT,
            verify=verify,
            limits=httpx.Limits(
                max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE,
                max_connections=settings.HTTP_MAX_CONNECTIONS,
            ),
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            retry_wait_min=settings.RETRY_WAIT_MIN,
            retry_wait_max=settings.RETRY_WAIT_MAX,
            **kwargs,
        )

    def build_request(
        self,
        method: str,
        url: str,
        body: bytes = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Request:
        """Build a request that can be replayed on every attempt."""
        return self._client.build_request(
            method.upper(),
            url,
            content=body or None,
            headers=headers,
        )

    def _attempt(self, request: httpx.Request, auth: Optional[httpx.Auth]) -> httpx.Response:
        return self._client.send(request, auth=auth, stream=True)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        """Close the discarded response and log the upcoming retry."""
        request: httpx.Request = retry_state.args[0]
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        reason = _retry_reason(retry_state)
        if self.metrics_enabled:
            search_retries_total.labels(reason=reason).inc()

        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            error = outcome.exception()
            logger.warning(
                "Request failed, retrying",
                method=request.method,
                url=str(request.url),
                attempt=retry_state.attempt_number,
                max_attempts=self.max_attempts,
                delay=round(delay, 3),
                error=str(error),
                error_type=type(error).__name__,
            )
            return

        response = outcome.result() if outcome is not None else None
        logger.info(
            "Retrying request",
            method=request.method,
            url=str(request.url),
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay=round(delay, 3),
            status_code=response.status_code if response is not None else None,
            reason=reason,
        )
        if response is not None:
            response.close()

    def _on_exhausted(self, retry_state: RetryCallState) -> httpx.Response:
        """Return the last response (or re-raise the last error) once attempts run out."""
        request: httpx.Request = retry_state.args[0]
        logger.warning(
            "Retry budget exhausted",
            method=request.method,
            url=str(request.url),
            attempts=retry_state.attempt_number,
        )
        return retry_state.outcome.result()

    def _count_transport_error(self, error: Exception) -> None:
        if self.metrics_enabled:
            search_transport_errors_total.labels(error_type=type(error).__name__).inc()

    def send(self, request: httpx.Request, auth: Optional[httpx.Auth] = None) -> httpx.Response:
        """
        Send a request, retrying as directed by the decision hook.

        The returned response is opened in streaming mode; the caller must
        read and close it.

        Args:
            request: Request built with `build_request`
            auth: Optional httpx auth applied on every attempt

        Returns:
            Final httpx.Response (any status code)

        Raises:
            SearchTimeoutError: The final attempt timed out
            SearchTransportError: No response could be obtained
            RetryPolicyError: The decision hook reported an error
        """
        retrying = Retrying(
            retry=_RetryIfPolicy(self.check_retry),
            wait=self._wait,
            stop=stop_after_attempt(self.max_attempts),
            sleep=self._sleep,
            before_sleep=self._before_sleep,
            retry_error_callback=self._on_exhausted,
        )

        try:
            return retrying(self._attempt, request, auth)
        except httpx.TimeoutException as e:
            self._count_transport_error(e)
            raise SearchTimeoutError(
                f"Request timed out: {e}",
                details={"method": request.method, "url": str(request.url)},
            ) from e
        except httpx.HTTPError as e:
            self._count_transport_error(e)
            raise SearchTransportError(
                f"Network error: {e}",
                details={
                    "method": request.method,
                    "url": str(request.url),
                    "error_type": type(e).__name__,
                },
            ) from e

    def close(self) -> None:
        """Close the connection pool."""
        if not self._client.is_closed:
            self._client.close()
            logger.debug("Closed retryable transport")

    def __enter__(self) -> "RetryableTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"max_attempts={self.max_attempts}, "
            f"retry_wait_min={self.retry_wait_min}s)"
        )
