from __future__ import annotations

import asyncio

from fastapi import Request

EXEMPT_PATH_PREFIXES = ("/docs", "/redoc", "/openapi.json", "/healthz")


def request_identity(request: Request) -> str:
    forwarded_for = str(request.headers.get("x-forwarded-for") or "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"
    if request.client and request.client.host:
        return str(request.client.host)
    return "unknown"


def is_exempt(request: Request) -> bool:
    return request.method == "OPTIONS" or request.url.path.startswith(EXEMPT_PATH_PREFIXES)


class FixedWindowRateLimiter:
    """Per-identity request counter over fixed windows of window_sec seconds."""

    def __init__(self, window_sec: float, max_requests: int, max_buckets: int = 10000):
        self.window_sec = float(window_sec)
        self.max_requests = int(max_requests)
        self.max_buckets = int(max_buckets)
        self._lock = asyncio.Lock()
        self._buckets: dict[str, dict[str, float]] = {}

    async def check(self, identity: str, now_ts: float) -> tuple[bool, int]:
        """Counts one request. Returns (blocked, retry_after_sec)."""
        async with self._lock:
            bucket = self._buckets.get(identity)
            if bucket is None:
                self._buckets[identity] = {
                    "window_start": now_ts,
                    "count": 1,
                }
                self._prune(now_ts)
                return False, 0

            window_start = bucket["window_start"]
            elapsed = now_ts - window_start
            if elapsed >= self.window_sec:
                bucket["window_start"] = now_ts
                bucket["count"] = 1
                return False, 0

            count = int(bucket.get("count") or 0)
            if count >= self.max_requests:
                retry_after = max(1, int(self.window_sec - elapsed))
                return True, retry_after

            bucket["count"] = count + 1
            return False, 0

    def _prune(self, now_ts: float) -> None:
        if len(self._buckets) <= self.max_buckets:
            return
        stale_keys = [
            key
            for key, value in self._buckets.items()
            if now_ts - value["window_start"] > (self.window_sec * 2)
        ]
        for key in stale_keys:
            self._buckets.pop(key, None)
