"""
Custom exceptions for the transport layer.

Only delivery failures are raised: a response with a failing HTTP status is
returned to the caller as a normal Response, never as one of these errors.
"""


class SearchClientError(Exception):
    """
    Base exception for all search client errors.

    All client-specific exceptions inherit from this to allow catching
    any of them with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SearchTransportError(SearchClientError):
    """
    Raised when no response could be obtained from the search API.

    Includes DNS failures, refused connections, TLS errors and network
    errors that persisted through every retry attempt.
    """
    pass


class SearchTimeoutError(SearchTransportError):
    """
    Raised when the final attempt timed out (connect, read, write or pool).
    """
    pass


class RetryPolicyError(SearchClientError):
    """
    Raised when the retry decision hook reports an error of its own.

    The transport stops retrying immediately and surfaces the hook's error
    as the cause.
    """
    pass
