"""
Yandex.Metrika API client.

YMetrikaClient builds authenticated requests, bounds how many of them are in
flight at once, and decodes JSON responses.

Example:
    >>> from ymetrika import YMetrikaClient
    >>> client = YMetrikaClient(token="y0_AgAAAA...")
    >>> counters = client.get("/management/v1/counters", {"per_page": 10})
    >>> report = client.get("/stat/v1/data", {"ids": 44147844, "metrics": "ym:s:visits"})
    >>> client.post("/management/v1/counter/44147844/goals", {"goal": {"name": "Signup", "type": "url"}})
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import requests

from ymetrika._errors import DecodeError, TransportError
from ymetrika._models import ApiRequest, HttpMethod
from ymetrika._throttle import ActiveRequestsThrottle

if TYPE_CHECKING:
    from ymetrika._config import ClientConfig, ThrottleConfig
    from ymetrika._http import HttpClient

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


class YMetrikaClient:
    """
    Client for the Yandex.Metrika HTTP API.

    One instance per token is meant to be created once and shared: its
    throttle is the only shared state, and it limits how many requests run
    at the same time (see ActiveRequestsThrottle).

    Every request carries the token as the `oauth_token` query parameter.
    GET requests send `data` as query parameters; POST, PUT and DELETE send it
    as a JSON body.

    Args:
        token: OAuth token. If None, uses YMETRIKA.config.auth.token.
        config: Client settings (host, port, timeouts, workers).
            If None, uses YMETRIKA.config.client.
        throttle_config: Admission settings. If None, uses YMETRIKA.config.throttle.
        http_client: Transport implementation. If None, uses RequestsHttpClient.

    Raises:
        ValueError: If no token is given and none is configured.
    """

    def __init__(
        self,
        token: str | None = None,
        config: ClientConfig | None = None,
        throttle_config: ThrottleConfig | None = None,
        http_client: HttpClient | None = None,
    ):
        from ymetrika._config import YMETRIKA
        cfg = YMETRIKA.config

        token = token or cfg.auth.token
        if not token:
            raise ValueError(
                "No OAuth token available. Either:\n"
                "  1. Pass it explicitly: YMetrikaClient(token=...)\n"
                "  2. Set the YMETRIKA_AUTH_TOKEN environment variable\n"
                "  3. Call YMETRIKA.configure(auth={'token': ...}) at startup"
            )

        if not http_client:
            from ymetrika._http import RequestsHttpClient
            http_client = RequestsHttpClient()

        self._token = token
        self.config = (config or cfg.client).validate()
        self.throttle = ActiveRequestsThrottle.from_config((throttle_config or cfg.throttle).validate())
        self.http_client: HttpClient = http_client
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @property
    def token(self) -> str:
        """The OAuth token this client authenticates with."""
        return self._token

    @property
    def active_requests_count(self) -> int:
        """Number of requests currently admitted and running (diagnostics only)."""
        return self.throttle.active_count

    # ------------------------------------------------------------------
    # Verb aliases
    # ------------------------------------------------------------------

    def get(self, path: str, data: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> Any:
        """Send a GET request; `data` becomes query parameters."""
        return self.request(path, HttpMethod.GET, data, headers)

    def post(self, path: str, data: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> Any:
        """Send a POST request with `data` as the JSON body."""
        return self.request(path, HttpMethod.POST, data, headers)

    def put(self, path: str, data: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> Any:
        """Send a PUT request with `data` as the JSON body."""
        return self.request(path, HttpMethod.PUT, data, headers)

    def delete(self, path: str, data: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> Any:
        """Send a DELETE request with `data` as the JSON body."""
        return self.request(path, HttpMethod.DELETE, data, headers)

    # ------------------------------------------------------------------
    # Generic request
    # ------------------------------------------------------------------

    def request(
        self,
        path: str,
        method: HttpMethod | str = HttpMethod.GET,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON response (blocking).

        Waits for a free slot first. The slot is held only while the HTTP
        exchange runs and is released whether it succeeds or fails.

        Args:
            path: API path beginning with "/".
            method: HTTP verb (GET, POST, PUT or DELETE).
            data: Query parameters for GET, JSON body otherwise.
            headers: Extra HTTP headers.

        Returns:
            The parsed JSON response body.

        Raises:
            AdmissionTimeoutError: If no slot freed up in time. No request is sent.
            TransportError: If the HTTP exchange failed.
            DecodeError: If the response body is not valid JSON.
        """
        return self.send(ApiRequest(path=path, method=HttpMethod(str(method).upper()), data=data or {}, headers=headers or {}))

    def send(self, request: ApiRequest) -> Any:
        """
        Send a prepared ApiRequest and return the decoded JSON response.

        See request() for the error contract.
        """
        assert request, "🌀 Sanity check | ApiRequest can not be None."

        prefix = f"{request.id[:26]:<26} | YMetrika"
        logger.info(f"{prefix} | {request.method} {request.path} (active={self.throttle.active_count})...")

        with self.throttle.slot():
            status_code, raw_body = self._exchange(request, prefix)

        if not 200 <= status_code < 300:
            logger.warning(f"{prefix} | ⚠️ {request.method} {request.path} returned HTTP {status_code}.")

        result = self._decode(raw_body, status_code, prefix)
        logger.info(f"{prefix} | ✅ {request.method} {request.path} finished (HTTP {status_code}).")
        return result

    def _exchange(self, request: ApiRequest, prefix: str) -> tuple[int, bytes]:
        """
        Send the request and read the whole response body.

        Raises:
            TransportError: If sending the request or reading the body fails.
        """
        body = request.body()
        url = f"{self.config.base_url}{request.path}"
        try:
            http_response = self.http_client.request(
                method=str(request.method),
                url=url,
                params=request.query_params(self._token),
                headers=request.request_headers(),
                body=body.encode("utf-8") if body is not None else None,
                timeout=self.config.request_timeout,
            )
            assert isinstance(http_response, requests.Response), \
                f"🌀 Sanity check | Object returned by `request` method is not an instance of `requests.Response`. ({http_response.__class__})"

            try:
                chunks = [chunk for chunk in http_response.iter_content(chunk_size=_CHUNK_SIZE) if chunk]
            finally:
                http_response.close()
        except requests.RequestException as e:
            logger.error(
                f"{prefix} | ❌ {request.method} {request.path} failed: {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            raise TransportError(f"{request.method} {request.path} failed: {e}", cause=e) from e

        return http_response.status_code, b"".join(chunks)

    def _decode(self, raw_body: bytes, status_code: int, prefix: str) -> Any:
        """
        Parse the accumulated response body as JSON.

        Raises:
            DecodeError: If the body is not UTF-8 encoded JSON.
        """
        try:
            return json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(
                f"{prefix} | ❌ Could not decode response body (HTTP {status_code}): {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            text = raw_body.decode("utf-8", errors="replace")
            raise DecodeError(body=text, status_code=status_code, cause=e) from e

    # ------------------------------------------------------------------
    # Concurrent helpers
    # ------------------------------------------------------------------

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers,
                    thread_name_prefix="ymetrika",
                )
            return self._executor

    def submit(
        self,
        path: str,
        method: HttpMethod | str = HttpMethod.GET,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Future[Any]:
        """
        Run request() on a worker thread and return its Future.

        The Future resolves to the decoded JSON response, or fails with the
        same exceptions request() raises.

        Example:
            >>> futures = [client.submit("/stat/v1/data", "GET", {"ids": i}) for i in counter_ids]
            >>> reports = [f.result() for f in futures]
        """
        return self._get_executor().submit(self.request, path, method, data, headers)

    def request_many(self, requests_: Sequence[ApiRequest]) -> list[Any]:
        """
        Send many requests concurrently and wait for all of them.

        Concurrency is still bounded by the throttle: worker threads beyond
        max_active_clients wait for a slot like any other caller.

        Args:
            requests_: The requests to send.

        Returns:
            One entry per request, in input order: the decoded JSON response,
            or the exception instance if that request failed.
        """
        if not requests_:
            return []

        logger.info(
            f"{'YMetrika-Batch':<26} | YMetrika | Sending {len(requests_)} requests "
            f"(max_workers={self.config.max_workers}, max_active_clients={self.throttle.max_active_clients})..."
        )

        futures = [self._get_executor().submit(self.send, req) for req in requests_]
        results: list[Any] = []
        for future in futures:
            try:
                results.append(future.result())
            except Exception as e:
                results.append(e)

        failed = sum(1 for r in results if isinstance(r, Exception))
        logger.info(
            f"{'YMetrika-Batch':<26} | YMetrika | Batch finished: "
            f"{len(results) - failed} succeeded, {failed} failed."
        )
        return results

    def close(self) -> None:
        """Shut down the worker threads used by submit() and request_many()."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> YMetrikaClient:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"YMetrikaClient(host={self.config.host!r}, throttle={self.throttle!r})"
