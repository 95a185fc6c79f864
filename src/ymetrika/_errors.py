"""
Exceptions raised by the ymetrika client.

Hierarchy:
    YMetrikaError
    ├── AdmissionTimeoutError  (defined in ymetrika._throttle)
    ├── TransportError
    └── DecodeError
"""

from __future__ import annotations


class YMetrikaError(Exception):
    """
    Base class for all errors raised by the ymetrika client.

    Example:
        >>> try:
        ...     client.get("/management/v1/counters")
        ... except YMetrikaError as e:
        ...     print(f"Request failed: {e}")
    """

    pass


class TransportError(YMetrikaError):
    """
    Raised when the HTTP exchange itself failed (DNS, TLS, connection reset,
    read timeout, broken response stream).

    The request may or may not have reached the server. The original
    `requests` exception is kept in `cause` (and as `__cause__`).

    Attributes:
        cause: The underlying exception raised by the transport.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class DecodeError(YMetrikaError):
    """
    Raised when the server answered but the response body is not valid JSON.

    Attributes:
        body: The raw response text (possibly truncated in the message).
        status_code: HTTP status code of the response, if known.
        cause: The underlying decoding exception.
    """

    def __init__(
        self,
        body: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        self.body = body
        self.status_code = status_code
        self.cause = cause
        preview = body if len(body) <= 200 else body[:197] + "..."
        super().__init__(
            f"Response body is not valid JSON (HTTP {status_code}): {preview!r}"
        )
