"""Per-client throttling for the AI-backed routes.

Each (client ip, route) pair gets a fixed-window bucket. The limit and the
window length come from ``HSLOOKUP_AI_RATE_LIMIT_PER_MINUTE`` and
``HSLOOKUP_RATE_WINDOW_SEC``; tests swap the limiter via :func:`set_rate_limit`.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request

from hslookup import config
from hslookup.observability import client_ip


@dataclass
class _Bucket:
    window: int
    used: int = 0


class RateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit = max(1, limit)
        self.window_seconds = max(1, window_seconds or config.rate_window_seconds())
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: Dict[Tuple[str, str], _Bucket] = {}
        self._current = self._window()

    def _window(self) -> int:
        return int(self._clock() // self.window_seconds)

    def _retry_after(self, window: int) -> int:
        return max(1, int((window + 1) * self.window_seconds - self._clock()))

    def check(self, client: str, route: str) -> int:
        """Count one hit; returns the hits left in this window or raises 429."""
        window = self._window()
        with self._lock:
            if window != self._current:
                self._purge(window)
            bucket = self._buckets.get((client, route))
            if bucket is None:
                bucket = self._buckets[(client, route)] = _Bucket(window=window)
            if bucket.used >= self.limit:
                raise HTTPException(
                    status_code=429,
                    detail={"message": "Rate limit exceeded", "limit": self.limit, "route": route},
                    headers={"Retry-After": str(self._retry_after(window))},
                )
            bucket.used += 1
            return self.limit - bucket.used

    def _purge(self, window: int) -> None:
        # Only the current window's buckets can still refuse a request.
        self._buckets = {key: b for key, b in self._buckets.items() if b.window == window}
        self._current = window

    def __len__(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter: Optional[RateLimiter] = None
_limit_override: Optional[int] = None


def get_rate_limiter() -> RateLimiter:
    """Shared limiter, rebuilt when the configured limit or window changes."""

    global _limiter
    limit = _limit_override or config.ai_rate_limit_per_minute()
    window = config.rate_window_seconds()
    if _limiter is None or (_limiter.limit, _limiter.window_seconds) != (max(1, limit), window):
        _limiter = RateLimiter(limit=limit, window_seconds=window)
    return _limiter


def enforce_ai_rate_limit(request: Request) -> str:
    peer = request.client.host if request.client else None
    ip = client_ip(request.headers.get("X-Forwarded-For"), peer)
    get_rate_limiter().check(ip, request.url.path)
    return ip


def set_rate_limit(limit: Optional[int]) -> None:
    """Pin the limit (tests, admin reloads); ``None`` goes back to the environment."""

    global _limiter, _limit_override
    _limit_override = int(limit) if limit is not None else None
    _limiter = None
