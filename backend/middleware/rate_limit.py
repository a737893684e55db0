"""
In-memory rate limiting for endpoints that fan out to the Algorand node.

Sliding-window counter per (client IP, route template). State lives in the
process, so each worker enforces its own limit.
"""
import time
import logging

from fastapi import Request

from config import settings
from domain.errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory sliding-window rate limiter.

    Tracks request timestamps per key. Keys whose window has emptied are
    dropped, so idle clients do not accumulate.
    """

    def __init__(self, max_keys: int = 10_000):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = {}
        self.max_keys = max_keys

    def _cleanup(self, key: str, window_seconds: int) -> list[float]:
        cutoff = time.monotonic() - window_seconds
        live = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if live:
            self._requests[key] = live
        else:
            self._requests.pop(key, None)
        return live

    def _sweep(self, window_seconds: int) -> None:
        """Drop every key whose window has emptied (clients that never came back)."""
        for key in list(self._requests):
            self._cleanup(key, window_seconds)

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a request and report whether it fits in the window.

        Returns:
            True if allowed, False if rate-limited
        """
        if len(self._requests) >= self.max_keys:
            self._sweep(window_seconds)
        live = self._cleanup(key, window_seconds)

        if len(live) >= max_requests:
            return False

        live.append(time.monotonic())
        self._requests[key] = live
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        return max(0, max_requests - len(self._cleanup(key, window_seconds)))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
limiter = RateLimiter()


def _route_key(request: Request) -> str:
    """Route template ("/payments/event/{event_id}/verify"), not the concrete path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


async def verify_rate_limit(request: Request):
    """
    FastAPI dependency guarding the payment verification route.

    Limits come from settings at call time (VERIFY_RATE_LIMIT per
    VERIFY_RATE_WINDOW_SECONDS).
    """
    max_requests = settings.verify_rate_limit
    window_seconds = settings.verify_rate_window_seconds

    client_ip = request.client.host if request.client else "unknown"
    route_path = _route_key(request)
    key = f"{client_ip}:{route_path}"

    if not limiter.check(key, max_requests, window_seconds):
        logger.warning(
            f"Rate limit exceeded: {client_ip} on {route_path} "
            f"({max_requests}/{window_seconds}s)"
        )
        raise RateLimitedError(
            f"Rate limit exceeded. Maximum {max_requests} requests "
            f"per {window_seconds} seconds. Try again later.",
            headers={
                "Retry-After": str(window_seconds),
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Remaining": str(limiter.remaining(key, max_requests, window_seconds)),
            },
        )
