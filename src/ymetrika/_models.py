"""
Data models for Yandex.Metrika API requests.

ApiRequest represents one in-flight call: it knows how to derive its query
parameters, JSON body and headers from the verb and the caller's data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ulid import ULID


class HttpMethod(StrEnum):
    """HTTP verbs supported by the API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        """GET sends its data in the query string; every other verb sends a JSON body."""
        return self is not HttpMethod.GET


def _to_query_value(value: Any) -> Any:
    # The API expects lowercase booleans and comma-separated lists
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(_to_query_value(item)) for item in value)
    return value


@dataclass
class ApiRequest:
    """
    A single request to the Yandex.Metrika API.

    Attributes:
        path: API path beginning with "/" (e.g., "/management/v1/counters").
        method: The HTTP verb.
        data: For GET, query parameters. For other verbs, the JSON body.
        headers: Extra HTTP headers.
        id: Unique request ID (ULID), used to correlate log lines.

    Example:
        >>> request = ApiRequest(path="/stat/v1/data", data={"ids": 44147844, "metrics": ["ym:s:visits"]})
        >>> request.query_params(token="y0_token")
        {'oauth_token': 'y0_token', 'ids': 44147844, 'metrics': 'ym:s:visits'}
        >>> request.body() is None
        True
    """

    path: str
    method: HttpMethod = HttpMethod.GET
    data: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(ULID()))

    def __post_init__(self) -> None:
        assert self.path, "Request path can not be empty."
        assert self.path.startswith("/"), f"Request path must start with '/' (got '{self.path}')."
        assert self.id, "Request ID can not be empty."

        self.method = HttpMethod(str(self.method).upper())
        # Callers' dicts are never mutated
        self.data = dict(self.data or {})
        self.headers = dict(self.headers or {})

    def query_params(self, token: str) -> dict[str, Any]:
        """
        Return the query parameters for this request.

        For GET, every entry of `data` is merged in; for other verbs `data`
        goes to the body only. The token is always sent as `oauth_token` and
        overrides an `oauth_token` key in `data`.
        """
        params: dict[str, Any] = {}
        if not self.method.has_body:
            params.update({key: _to_query_value(value) for key, value in self.data.items()})
        params["oauth_token"] = token
        return params

    def body(self) -> str | None:
        """Return the JSON-encoded body, or None for GET."""
        if not self.method.has_body:
            return None
        return json.dumps(self.data, ensure_ascii=False)

    def request_headers(self) -> dict[str, str]:
        """
        Return the headers to send.

        For verbs with a body, Content-Length is set to the body's UTF-8 byte
        length and Content-Type defaults to application/json.
        """
        headers = dict(self.headers)
        body = self.body()
        if body is not None:
            headers["Content-Length"] = str(len(body.encode("utf-8")))
            if not any(name.lower() == "content-type" for name in headers):
                headers["Content-Type"] = "application/json"
        return headers
