"""
Rate limiting for sensitive endpoints.

``SlidingWindowRateLimiter`` is the inner limiter. ``RateLimitGuard``
is the FastAPI dependency wrapping it: on a violation it records a
``rate_limit_violation`` audit entry and rejects the request with 429
and a ``retryAfter`` hint derived from the limiter's window.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request

from credentialing.app.audit.origin import client_ip
from credentialing.app.errors import RateLimitExceeded

RATE_LIMIT_VIOLATION = "rate_limit_violation"
DEFAULT_RETRY_AFTER_MS = 900_000


class SlidingWindowRateLimiter:
    """
    In-memory sliding window rate limiter keyed by client.

    At most ``max_requests`` requests per ``window_ms`` milliseconds
    are allowed per key. Rejected requests do not consume capacity.
    Keys whose window has emptied are dropped, either when seen again or
    by the sweep that runs every ``sweep_every`` calls to ``hit``.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 1000,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive.")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive.")
        if sweep_every <= 0:
            raise ValueError("sweep_every must be positive.")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.sweep_every = sweep_every
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._calls = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        with self._lock:
            return len(self._hits)

    def hit(self, key: str) -> bool:
        """Register a request for ``key``; False if over the limit."""
        now = self._clock()
        window_start = now - self.window_ms / 1000

        with self._lock:
            self._calls += 1
            if self._calls % self.sweep_every == 0:
                self._sweep(window_start)

            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= self.max_requests:
                return False

            hits.append(now)
            return True

    def prune(self) -> int:
        """Drop every key with no hits left in the window. Returns the count."""
        window_start = self._clock() - self.window_ms / 1000
        with self._lock:
            return self._sweep(window_start)

    def _sweep(self, window_start: float) -> int:
        stale = [
            key
            for key, hits in self._hits.items()
            if not hits or hits[-1] <= window_start
        ]
        for key in stale:
            del self._hits[key]
        return len(stale)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


def retry_after_seconds(
    limiter: object,
    default_window_ms: int = DEFAULT_RETRY_AFTER_MS,
) -> int:
    """Limiter window in whole seconds, rounded up."""
    window_ms = getattr(limiter, "window_ms", None) or default_window_ms
    return math.ceil(window_ms / 1000)


class RateLimitGuard:
    """
    Dependency enforcing a named limiter from ``app.state.rate_limiters``.

    The violation is recorded here, once; audited routes do not record
    it again.
    """

    def __init__(
        self,
        limiter_name: str,
        *,
        resource: str,
        limit_type: str,
        audit_error: str,
        client_error: str,
    ) -> None:
        self.limiter_name = limiter_name
        self.resource = resource
        self.limit_type = limit_type
        self.audit_error = audit_error
        self.client_error = client_error

    async def __call__(self, request: Request) -> None:
        limiter = request.app.state.rate_limiters[self.limiter_name]
        if limiter.hit(client_ip(request)):
            return

        recorder = getattr(request.app.state, "audit_recorder", None)
        if recorder is not None:
            recorder.record_request(
                request,
                action=RATE_LIMIT_VIOLATION,
                resource=self.resource,
                success=False,
                error_message=self.audit_error,
                metadata={"limitType": self.limit_type},
            )

        settings = getattr(request.app.state, "settings", None)
        default_ms = (
            settings.rate_limit_retry_after_default_ms
            if settings is not None
            else DEFAULT_RETRY_AFTER_MS
        )
        raise RateLimitExceeded(
            self.client_error,
            retry_after=retry_after_seconds(limiter, default_ms),
        )


banking_rate_limit = RateLimitGuard(
    "banking",
    resource="provider_banking",
    limit_type="banking_access",
    audit_error="Rate limit exceeded for banking data access",
    client_error="Too many banking data requests. Please try again later.",
)
