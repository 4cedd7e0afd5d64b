"""
In-memory rate limiting for the public API.

Every API router shares a per-IP budget (100 requests per 15 minutes by
default); individual routes can add a tighter one. Uses a sliding-window counter per key.
Counts are per process; each instance keeps its own window.
"""
import time
import logging
from collections import defaultdict

from fastapi import Request

from config import settings
from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    Tracks request timestamps per key (client IP, optionally plus route).
    """

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _cleanup(self, key: str, window_seconds: int):
        """Remove expired timestamps from the window."""
        cutoff = time.time() - window_seconds
        recent = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if recent:
            self._requests[key] = recent
        else:
            # drop idle keys
            self._requests.pop(key, None)

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a request if it fits in the window.

        Returns:
            True if allowed, False if rate-limited
        """
        self._cleanup(key, window_seconds)

        if len(self._requests.get(key, ())) >= max_requests:
            return False

        self._requests[key].append(time.time())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        """Get the number of remaining requests in the current window."""
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests.get(key, ())))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
_limiter = RateLimiter()


def rate_limit(max_requests: int = 10, window_seconds: int = 60, per_route: bool = True):
    """
    FastAPI dependency factory for rate limiting.

    Usage:
        @router.post("/initialize", dependencies=[Depends(rate_limit(10, 60))])

    Args:
        max_requests: Maximum requests allowed in the window
        window_seconds: Time window in seconds
        per_route: Count each route separately; False shares one budget per IP
    """
    async def _check_rate_limit(request: Request):
        client_ip = request.client.host if request.client else "unknown"
        key = f"{client_ip}:{request.url.path}" if per_route else client_ip

        if not _limiter.check(key, max_requests, window_seconds):
            logger.warning(
                f"Rate limit exceeded: {key} ({max_requests}/{window_seconds}s)"
            )
            raise RateLimitError(
                f"Too many requests. Maximum {max_requests} requests "
                f"per {window_seconds} seconds. Try again later.",
                details={"retry_after": window_seconds, "limit": max_requests},
            )

    return _check_rate_limit


async def api_rate_limit(request: Request):
    """Shared per-IP budget applied to every public API router."""
    await rate_limit(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
        per_route=False,
    )(request)
