"""In-memory rate limiter for the public intake, contact and login endpoints."""

from __future__ import annotations

import functools
import threading
import time
from collections import deque

from flask import current_app, jsonify, request


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by scope and client address.

    A key lives only while it has hits inside its window. Keys of clients that
    went quiet are dropped by a sweep that runs at most once every
    ``sweep_interval`` seconds.
    """

    def __init__(self, sweep_interval: float = 60.0, clock=time.monotonic):
        self._windows: dict[str, tuple[deque, int]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, key: str, now: float) -> deque | None:
        entry = self._windows.get(key)
        if entry is None:
            return None
        hits, window_seconds = entry
        cutoff = now - window_seconds
        while hits and hits[0] < cutoff:
            hits.popleft()
        if not hits:
            del self._windows[key]
            return None
        return hits

    def _sweep(self, now: float) -> None:
        for key in list(self._windows):
            self._prune(key, now)
        self._last_sweep = now

    def allow(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            hits = self._prune(key, now)
            if hits is not None and len(hits) >= max_requests:
                return False, max(1, int(window_seconds - (now - hits[0])))
            if hits is None:
                hits = deque()
            self._windows[key] = (hits, window_seconds)
            hits.append(now)
        return True, 0

    def init_app(self, app) -> None:
        app.extensions["rate_limiter"] = self


def rate_limited(scope: str, limit_key: str, window_key: str, message: str):
    """Limit a view per client address using ``limit_key``/``window_key`` from config."""

    def decorator(view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            config = current_app.config
            if not config.get("RATELIMIT_ENABLED", True):
                return view(*args, **kwargs)
            client = request.remote_addr or "unknown"
            limiter = current_app.extensions["rate_limiter"]
            allowed, retry_after = limiter.allow(
                f"{scope}:{client}", int(config[limit_key]), int(config[window_key])
            )
            if not allowed:
                current_app.logger.warning("Rate limit exceeded on %s for %s", scope, client)
                response = jsonify({"success": False, "error": message, "retryAfter": retry_after})
                response.status_code = 429
                response.headers["Retry-After"] = str(retry_after)
                return response
            return view(*args, **kwargs)

        return wrapper

    return decorator
