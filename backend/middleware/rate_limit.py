"""
In-memory rate limiting for shopper-facing payment endpoints.

Checkout initiation calls out to Stripe/Paystack on every request, so it is
throttled per client. Uses a sliding-window counter per (client, scope) key.
For multi-worker deployments, replace with a shared (Redis-backed) limiter.
"""
import time
import logging
from collections import defaultdict

from fastapi import Request

from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    Not suitable for multi-worker deployments.
    """

    def __init__(self, clock=time.monotonic):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._clock = clock

    def _cleanup(self, key: str, window_seconds: int):
        """Remove expired timestamps from the window."""
        cutoff = self._clock() - window_seconds
        self._requests[key] = [
            ts for ts in self._requests[key] if ts > cutoff
        ]

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record a hit for `key`; False if it would exceed the window's budget."""
        self._cleanup(key, window_seconds)

        if len(self._requests[key]) >= max_requests:
            return False

        self._requests[key].append(self._clock())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        """Get the number of remaining requests in the current window."""
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests[key]))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
_limiter = RateLimiter()


def rate_limit(max_requests: int = 10, window_seconds: int = 60, scope: str | None = None):
    """
    FastAPI dependency factory for rate limiting.

    Usage:
        @router.post("/payments/checkout")
        async def checkout(..., _rate=Depends(rate_limit(10, 60, scope="checkout"))):
            ...
    """
    async def _check_rate_limit(request: Request):
        client_ip = request.client.host if request.client else "unknown"
        key = f"{client_ip}:{scope or request.url.path}"

        if not _limiter.check(key, max_requests, window_seconds):
            remaining = _limiter.remaining(key, max_requests, window_seconds)
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {scope or request.url.path} "
                f"({max_requests}/{window_seconds}s)"
            )
            raise RateLimitError(
                f"Too many attempts. Maximum {max_requests} requests "
                f"per {window_seconds} seconds. Try again later.",
                retry_after=window_seconds,
                headers={
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Remaining": str(remaining),
                },
            )

    return _check_rate_limit
