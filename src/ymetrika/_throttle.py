"""
Admission control for in-flight requests.

ActiveRequestsThrottle bounds how many requests a client may have in flight
at the same time. Callers that find every slot taken poll at a fixed interval
until one frees up, or give up with AdmissionTimeoutError once the configured
wait bound is reached.

The counter has a single meaning: the number of requests admitted and not yet
released. It is guarded by a lock, so acquire/release are safe across threads.

Waiters are not queued. Whichever thread's poll happens to find a free slot
first is admitted, regardless of arrival order.

Example:
    >>> from ymetrika._throttle import ActiveRequestsThrottle
    >>> throttle = ActiveRequestsThrottle(max_active_clients=2, max_wait_timeout=60.0)
    >>> with throttle.slot():
    ...     response = do_http_call()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from ymetrika._errors import YMetrikaError

if TYPE_CHECKING:
    from ymetrika._config import ThrottleConfig

logger = logging.getLogger(__name__)


class AdmissionTimeoutError(YMetrikaError):
    """
    Raised when a caller waited longer than max_wait_timeout for a free slot.

    No request was sent. It is safe to try again later or to report the
    service as busy.

    Attributes:
        waited: Seconds the caller actually waited before giving up.
        max_wait_time: The configured wait bound, in seconds.

    Example:
        >>> try:
        ...     client.get("/stat/v1/data", {"ids": 123})
        ... except AdmissionTimeoutError as e:
        ...     print(f"Busy: gave up after {e.waited:.1f}s")
    """

    def __init__(self, waited: float, max_wait_time: float):
        self.waited = waited
        self.max_wait_time = max_wait_time
        super().__init__(
            f"Timed out waiting for a free request slot: "
            f"waited {waited:.2f}s, max_wait_timeout={max_wait_time:.2f}s"
        )


class ActiveRequestsThrottle:
    """
    Limits the number of concurrently admitted requests.

    Args:
        max_active_clients: Maximum number of requests admitted at once.
        max_wait_timeout: Maximum seconds to wait for a slot. If None,
            waits indefinitely.
        poll_interval: Seconds between admission checks.

    Raises:
        AdmissionTimeoutError: From acquire(), when max_wait_timeout is exceeded.
    """

    def __init__(
        self,
        max_active_clients: int = 2,
        max_wait_timeout: float | None = 60.0,
        poll_interval: float = 0.1,
    ):
        assert max_active_clients is not None, "max_active_clients cannot be None."
        assert max_active_clients >= 1, "max_active_clients must be at least 1."
        assert max_wait_timeout is None or max_wait_timeout > 0, "max_wait_timeout must be > 0 or None."
        assert poll_interval is not None, "poll_interval cannot be None."
        assert poll_interval > 0, "poll_interval must be greater than 0."

        self.max_active_clients = max_active_clients
        self.max_wait_timeout = max_wait_timeout
        self.poll_interval = poll_interval

        self._active_count = 0
        self._waiting_count = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ThrottleConfig) -> ActiveRequestsThrottle:
        """Build a throttle from a ThrottleConfig section."""
        return cls(
            max_active_clients=config.max_active_clients,
            max_wait_timeout=config.max_wait_timeout,
            poll_interval=config.poll_interval,
        )

    @property
    def active_count(self) -> int:
        """Number of requests currently admitted (diagnostics only)."""
        with self._lock:
            return self._active_count

    @property
    def waiting_count(self) -> int:
        """Number of callers currently polling for a slot (diagnostics only)."""
        with self._lock:
            return self._waiting_count

    def _try_admit(self) -> bool:
        with self._lock:
            if self._active_count < self.max_active_clients:
                self._active_count += 1
                return True
            return False

    def acquire(self) -> None:
        """
        Take a slot, polling every poll_interval until one is free.

        The first check happens immediately. Before each sleep, gives up if
        sleeping again would push the total wait past max_wait_timeout.

        Raises:
            AdmissionTimeoutError: If no slot became free in time.
        """
        if self._try_admit():
            return

        start = time.monotonic()
        with self._lock:
            self._waiting_count += 1
        try:
            while True:
                waited = time.monotonic() - start
                if self.max_wait_timeout is not None and waited + self.poll_interval > self.max_wait_timeout:
                    logger.warning(
                        f"⚠️ No request slot freed up after {waited:.2f}s "
                        f"(max_active_clients={self.max_active_clients}). Giving up."
                    )
                    raise AdmissionTimeoutError(waited=waited, max_wait_time=self.max_wait_timeout)

                # Sleep outside the lock so running requests can release
                time.sleep(self.poll_interval)

                if self._try_admit():
                    logger.debug(
                        f"Request slot acquired after waiting {time.monotonic() - start:.2f}s."
                    )
                    return
        finally:
            with self._lock:
                self._waiting_count -= 1

    def release(self) -> None:
        """
        Give a slot back.

        Must be called exactly once for every successful acquire().

        Raises:
            RuntimeError: If no slot is currently held.
        """
        with self._lock:
            if self._active_count <= 0:
                raise RuntimeError("release() called without a matching acquire().")
            self._active_count -= 1

    @contextmanager
    def slot(self) -> Iterator[None]:
        """
        Hold a slot for the duration of the block.

        The slot is released when the block exits, whether it returns or raises.
        If acquire() times out, the block never runs and nothing is released.
        """
        self.acquire()
        try:
            yield
        finally:
            self.release()

    def __repr__(self) -> str:
        return (
            f"ActiveRequestsThrottle(active={self.active_count}, "
            f"max_active_clients={self.max_active_clients}, "
            f"max_wait_timeout={self.max_wait_timeout}, poll_interval={self.poll_interval})"
        )
