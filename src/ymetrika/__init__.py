"""
Yandex.Metrika API client for Python.

A small client that authenticates requests with an OAuth token, encodes GET
parameters and JSON bodies, decodes JSON responses, and limits how many
requests are in flight at once.

Quick Start:
    >>> from ymetrika import YMetrikaClient
    >>> client = YMetrikaClient(token="y0_AgAAAA...")
    >>> counters = client.get("/management/v1/counters")
    >>> report = client.get("/stat/v1/data", {"ids": 44147844, "metrics": "ym:s:visits"})

Global Configuration:
    >>> from ymetrika import YMETRIKA
    >>> YMETRIKA.configure(
    ...     auth={"token": "y0_AgAAAA..."},
    ...     throttle={"max_active_clients": 3, "max_wait_timeout": 30.0},
    ... )

Main Classes:
    - YMetrikaClient: Client with get/post/put/delete, request, submit and request_many.
    - ApiRequest: A single request (path, method, data, headers).
    - HttpMethod: Enum of supported verbs.

Admission control:
    - ActiveRequestsThrottle: Bounds concurrently admitted requests.
    - AdmissionTimeoutError: Raised when no slot frees up within max_wait_timeout.

HTTP transport:
    - HttpClient: Abstract transport.
    - RequestsHttpClient: Default transport built on `requests`.

Errors:
    - YMetrikaError: Base class for client errors.
    - TransportError: The HTTP exchange failed.
    - DecodeError: The response body is not valid JSON.

Configuration:
    - YMETRIKA: Global singleton for configuration.
    - YMetrikaConfig, AuthConfig, ClientConfig, ThrottleConfig: Config sections.
    - ConfigEnvVarError, ConfigValidationError: Configuration errors.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("ymetrika")

from ymetrika._client import YMetrikaClient
from ymetrika._config import (
    YMETRIKA,
    AuthConfig,
    ClientConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    ThrottleConfig,
    YMetrikaConfig,
)
from ymetrika._errors import DecodeError, TransportError, YMetrikaError
from ymetrika._http import HttpClient, RequestsHttpClient
from ymetrika._models import ApiRequest, HttpMethod
from ymetrika._throttle import ActiveRequestsThrottle, AdmissionTimeoutError

__all__ = [
    "__version__",
    # Client
    "YMetrikaClient",
    "ApiRequest",
    "HttpMethod",
    # Admission control
    "ActiveRequestsThrottle",
    "AdmissionTimeoutError",
    # HTTP transport
    "HttpClient",
    "RequestsHttpClient",
    # Errors
    "YMetrikaError",
    "TransportError",
    "DecodeError",
    # Configuration
    "YMETRIKA",
    "YMetrikaConfig",
    "AuthConfig",
    "ClientConfig",
    "ThrottleConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
]
