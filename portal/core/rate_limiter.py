import time
from collections import defaultdict
from threading import Lock
from typing import Dict, Optional

from fastapi import Request

from portal.core.config import settings
from portal.core.errors import RateLimitExceeded
from portal.core.logging import logger


class RateLimiter:
    """
    In-memory fixed window rate limiter keyed on client address.

    Each key holds a bucket with a request count and the time at which the
    window resets.
    """

    def __init__(self, max_requests: int = 100, time_window: int = 60):
        self.max_requests = max_requests
        self.time_window = time_window
        self._buckets: Dict[str, Dict[str, float]] = defaultdict(dict)
        self._lock = Lock()
        self._last_cleanup = time.time()
        self._cleanup_interval = 300

    def _generate_key(self, request: Request, key_prefix: str) -> str:
        forwarded = request.headers.get('X-Forwarded-For')
        if forwarded:
            client_ip = forwarded.split(',')[0].strip()
        elif request.client:
            client_ip = request.client.host
        else:
            client_ip = 'unknown'
        return f"{key_prefix}:{client_ip}"

    def _cleanup_expired(self) -> None:
        """Remove expired rate limit entries to prevent memory leaks."""
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        with self._lock:
            expired_keys = [
                key for key, bucket in self._buckets.items()
                if bucket.get('reset_time', 0) < current_time
            ]
            for key in expired_keys:
                del self._buckets[key]
            self._last_cleanup = current_time

    def check_rate_limit(
        self,
        request: Request,
        key_prefix: str,
        max_requests: Optional[int] = None,
        time_window: Optional[int] = None
    ) -> bool:
        """
        Check if a request is allowed based on rate limiting rules.

        Returns:
            bool: True if request is allowed, False if rate limit exceeded
        """
        self._cleanup_expired()

        limit = max(1, max_requests or self.max_requests)
        window = max(1, time_window or self.time_window)
        key = self._generate_key(request, key_prefix)
        current_time = time.time()

        with self._lock:
            bucket = self._buckets[key]
            if not bucket or current_time > bucket['reset_time']:
                bucket.update({
                    'count': 0,
                    'reset_time': current_time + window,
                })

            if bucket['count'] >= limit:
                logger.warning(f"Rate limit exceeded for {key}")
                return False

            bucket['count'] += 1
            return True

    def clear(self) -> None:
        """Drop every bucket."""
        with self._lock:
            self._buckets.clear()


rate_limiter = RateLimiter()


def limit_requests(key_prefix: str, max_requests: int, time_window: int):
    """Build a dependency that rejects callers over the given window limit."""
    async def dependency(request: Request) -> None:
        if not rate_limiter.check_rate_limit(request, key_prefix, max_requests, time_window):
            raise RateLimitExceeded(
                "Too many requests, please try again later",
                details={"retry_after_seconds": time_window}
            )
    return dependency


login_rate_limit = limit_requests(
    "login", settings.LOGIN_RATE_LIMIT, settings.LOGIN_RATE_WINDOW_SECONDS
)
contact_rate_limit = limit_requests(
    "contact", settings.CONTACT_RATE_LIMIT, settings.CONTACT_RATE_WINDOW_SECONDS
)
