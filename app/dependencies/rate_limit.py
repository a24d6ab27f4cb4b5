"""Lightweight per-IP per-path rate limiter for credential endpoints."""
import math
import time
from collections import deque
from typing import Deque, Dict, Optional

from fastapi import Request

from app.utils.errors import RateLimitedError


class SlidingWindowLimiter:
    """In-memory sliding window buckets: key -> deque[timestamps]."""

    def __init__(self):
        self._buckets: Dict[str, Deque[float]] = {}
        self._last_sweep = 0.0

    def __len__(self) -> int:
        return len(self._buckets)

    def _sweep(self, now: float, window: int) -> None:
        # Buckets whose newest hit left the window hold nothing useful
        window_start = now - window
        for key in [k for k, b in self._buckets.items() if not b or b[-1] <= window_start]:
            del self._buckets[key]
        self._last_sweep = now

    def hit(self, key: str, limit: int, window: int, now: Optional[float] = None) -> float:
        """Record a hit; return 0 when allowed, else seconds until a slot frees."""
        now = time.time() if now is None else now
        if now - self._last_sweep >= window:
            self._sweep(now, window)

        bucket = self._buckets.setdefault(key, deque())
        window_start = now - window

        # Drop old entries outside the window
        while bucket and bucket[0] <= window_start:
            bucket.popleft()

        if len(bucket) >= limit:
            return bucket[0] + window - now

        bucket.append(now)
        return 0

    def reset(self) -> None:
        self._buckets.clear()
        self._last_sweep = 0.0


limiter = SlidingWindowLimiter()


def _peer_ip(request: Request) -> str:
    # Socket peer only; forwarding headers are client-controlled
    client = getattr(request, "client", None)
    return client.host if client and getattr(client, "host", None) else "unknown"


async def rate_limit(request: Request):
    settings = request.app.state.settings
    if not settings.RATE_LIMIT_ENABLED:
        return True

    key = f"{_peer_ip(request)}:{request.url.path}"
    wait = limiter.hit(key, settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_PERIOD_SECONDS)
    if wait:
        raise RateLimitedError(retry_after=max(1, math.ceil(wait)))
    return True
