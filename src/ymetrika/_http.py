"""
HTTP transport abstraction for the ymetrika client.

YMetrikaClient never talks to the network directly: it hands a fully built
request to an HttpClient and reads the streamed response it gets back.

Available implementations:
    - RequestsHttpClient: Default transport built on `requests`.

Example:
    >>> from ymetrika._http import RequestsHttpClient
    >>> transport = RequestsHttpClient()
    >>> response = transport.request(
    ...     method="GET",
    ...     url="https://api-metrika.yandex.ru:443/management/v1/counters",
    ...     params={"oauth_token": "y0_token"},
    ... )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, override

import requests

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP transports.

    Implementations must return a `requests.Response` whose body can be
    consumed with `iter_content()`, and must let `requests.RequestException`
    (or a subclass) propagate on network failures.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def request(self, method, url, params=None, headers=None, body=None, timeout=30):
        ...         return requests.request(method, url, params=params, headers=headers,
        ...                                 data=body, timeout=timeout, stream=True)
    """

    @abstractmethod
    def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        timeout: float = 30,
    ) -> requests.Response:
        """
        Execute an HTTP request.

        Args:
            method: HTTP verb (GET, POST, PUT, DELETE).
            url: Scheme, host, port and path, without query string.
            params: Query parameters, encoded by the transport.
            headers: HTTP headers to send.
            body: Raw request body, or None to send no body.
            timeout: Connect/read timeout in seconds.

        Returns:
            The HTTP response, with its body not yet consumed.

        Raises:
            requests.RequestException: If the HTTP exchange fails.
        """
        pass


# =============================================================================
# requests-based Implementation
# =============================================================================


class RequestsHttpClient(HttpClient):
    """
    Default transport using `requests`.

    Responses are opened with `stream=True` so the caller reads the body
    chunk by chunk.

    Args:
        session: Optional `requests.Session` to send requests through.
            If None, each call uses the module-level `requests.request`.
    """

    def __init__(self, session: requests.Session | None = None):
        self._session = session

    @override
    def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        timeout: float = 30,
    ) -> requests.Response:
        """
        Execute an HTTP request with `requests`.

        Raises:
            AssertionError: If method or url is empty, or timeout is invalid.
            requests.RequestException: If the HTTP exchange fails.
        """
        assert method, "HTTP method cannot be empty."
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        sender = self._session.request if self._session is not None else requests.request
        logger.debug(f"{method} {url}")
        response: requests.Response = sender(
            method,
            url,
            params=params,
            headers=headers,
            data=body,
            timeout=timeout,
            stream=True,
        )
        return response
