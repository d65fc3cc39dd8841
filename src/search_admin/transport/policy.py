"""
Retry decision engine.

Decides, for each attempt made by the RetryableTransport, whether the request
should be re-attempted. One override sits on top of the default policy:

- A 400 whose `error.type` is `resource_already_exists_exception` is retried.
  A creation call that fails because the resource exists has converged to
  the intended state, so the loop gets another attempt instead of a hard
  failure.

Everything else (transport errors, 429, 5xx, other 4xx) goes through
`default_retry_policy`.

Reading the body for inspection buffers it in memory, so the caller can
still read the same body afterwards.
"""

import json
import ssl
from collections.abc import Mapping
from typing import Any, Optional, Protocol

import httpx
import structlog

from search_admin.models.http_models import RetryDecision


logger = structlog.get_logger(__name__)


RESOURCE_ALREADY_EXISTS = "resource_already_exists_exception"

# Errors that no amount of retrying will fix
NON_RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (
    httpx.UnsupportedProtocol,
    httpx.TooManyRedirects,
)


class RetryPolicy(Protocol):
    """
    Protocol for retry decision hooks.

    Called once per attempt with either the received response or the
    transport error raised when no response was obtained.
    """

    def __call__(
        self,
        response: Optional[httpx.Response],
        error: Optional[BaseException],
    ) -> RetryDecision:
        ...


def _is_certificate_error(error: BaseException) -> bool:
    """Walk the exception chain looking for a TLS verification failure."""
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def default_retry_policy(
    response: Optional[httpx.Response],
    error: Optional[BaseException],
) -> RetryDecision:
    """
    Default policy used for every case the override does not claim.

    - Transport error: retry, unless the error is non-recoverable
      (unsupported scheme, redirect loop, certificate verification failure)
    - 429 Too Many Requests: retry
    - Status 0 or 5xx other than 501 Not Implemented: retry
    - Anything else, including every other 4xx: do not retry
    """
    if error is not None:
        if isinstance(error, NON_RECOVERABLE_ERRORS) or _is_certificate_error(error):
            return RetryDecision(retry=False)
        return RetryDecision(retry=True)

    if response is None:
        return RetryDecision(retry=False)

    status = response.status_code
    if status == 429:
        return RetryDecision(retry=True)
    if status == 0 or (status >= 500 and status != 501):
        return RetryDecision(retry=True)
    return RetryDecision(retry=False)


def buffer_body(response: httpx.Response) -> Optional[bytes]:
    """
    Read the whole response body into memory.

    httpx keeps the buffered bytes on the response, so `.content`, `.json()`
    and `.iter_bytes()` keep working for the next reader. Returns None if the
    body cannot be read.
    """
    try:
        return response.read()
    except (httpx.HTTPError, httpx.StreamError) as e:
        logger.warning(
            "Unable to buffer response body for retry inspection",
            status_code=response.status_code,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None


def extract_error_type(data: Any) -> str:
    """
    Return `data["error"]["type"]`, or "" when the payload has no such field.

    Missing keys, non-mapping payloads and non-string types all mean "no
    recognizable reason" and are not errors.
    """
    if not isinstance(data, Mapping):
        return ""
    error = data.get("error")
    if not isinstance(error, Mapping):
        return ""
    reason = error.get("type")
    return reason if isinstance(reason, str) else ""


def _decode_body(response: httpx.Response) -> Any:
    content = buffer_body(response)
    if not content:
        return None
    try:
        return json.loads(content)
    except ValueError as e:
        logger.debug(
            "Response body is not JSON, no retry reason available",
            status_code=response.status_code,
            error=str(e),
        )
        return None


def check_retry(
    response: Optional[httpx.Response],
    error: Optional[BaseException],
) -> RetryDecision:
    """
    Decide whether an attempt should be retried.

    Args:
        response: Response received for the attempt, or None
        error: Transport error raised when no response was received

    Returns:
        RetryDecision from the already-exists override or the default policy
    """
    if response is None:
        return default_retry_policy(None, error)

    if response.status_code == 400:
        reason = extract_error_type(_decode_body(response))
        if reason == RESOURCE_ALREADY_EXISTS:
            logger.info(
                "Resource already exists, scheduling retry",
                status_code=response.status_code,
                reason=reason,
            )
            return RetryDecision(retry=True)

    return default_retry_policy(response, error)
