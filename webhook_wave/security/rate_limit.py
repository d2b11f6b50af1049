"""Per-client rate limiting for the webhook endpoint.

Counting contract:
- Every request that reaches the rate gate increments its client's count,
  admitted or not
- A request is admitted iff its incremented count <= max_requests
- The whole count map is cleared every window_seconds, measured from
  construction. This is a single global window, not a sliding one: a
  client that starts a burst just before a tick gets a short window
- Clients are keyed by the first X-Forwarded-For hop (unauthenticated)
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 60.0

# ClientKey used when no forwarded address is present
UNKNOWN_CLIENT = "unknown"


def client_key_from_headers(headers: Mapping[str, str]) -> str:
    """Derive the rate-limit key from the first X-Forwarded-For hop."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return UNKNOWN_CLIENT


class RateLimiter:
    """Fixed-window request counter shared by all in-flight requests.

    One instance per process, constructed at startup and handed to the
    request handler. ``check`` holds a lock across the read, increment and
    compare so concurrent requests from one client are never both admitted
    on a stale count.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}
        self._window_start = clock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def check(self, client_key: str) -> bool:
        """Count a request from ``client_key``. Returns True to admit."""
        with self._lock:
            self._roll_window()
            count = self._counts.get(client_key, 0) + 1
            self._counts[client_key] = count
        return count <= self._max_requests

    def count(self, client_key: str) -> int:
        """Requests seen from ``client_key`` in the current window."""
        with self._lock:
            self._roll_window()
            return self._counts.get(client_key, 0)

    def reset(self) -> None:
        """Clear every client's count and start a new window now."""
        with self._lock:
            self._counts.clear()
            self._window_start = self._clock()

    def _roll_window(self) -> None:
        # Caller holds the lock. Ticks stay aligned to construction time,
        # so an idle period spanning several ticks clears exactly once.
        elapsed = self._clock() - self._window_start
        if elapsed < self._window_seconds:
            return
        ticks = int(elapsed // self._window_seconds)
        self._window_start += ticks * self._window_seconds
        if self._counts:
            logger.debug("Rate window reset: cleared %d client(s)", len(self._counts))
        self._counts.clear()
