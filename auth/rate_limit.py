"""Per-client sliding-window rate limiting for endpoint classes."""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request

from .errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    window_seconds: int
    max_requests: int
    message: str


AUTH = RateLimitPolicy(
    "auth", 15 * 60, 100,
    "Too many authentication attempts, please try again later.",
)
PASSWORD_RESET = RateLimitPolicy(
    "password_reset", 60 * 60, 3,
    "Too many password reset attempts, please try again later.",
)
API = RateLimitPolicy(
    "api", 15 * 60, 100,
    "Too many requests, please try again later.",
)
CONTACT = RateLimitPolicy(
    "contact", 60 * 60, 10,
    "Too many contact form submissions, please try again later.",
)

DEFAULT_POLICIES = {p.name: p for p in (AUTH, PASSWORD_RESET, API, CONTACT)}


class SlidingWindowLimiter:
    """In-memory request log per (endpoint class, client address).

    Only the client address and the endpoint class are considered, never the
    request content. ``hit`` runs without awaiting, so on one event loop it
    cannot interleave with another request's ``hit``.
    """

    PRUNE_EVERY = 1000

    def __init__(
        self,
        policies: Optional[dict[str, RateLimitPolicy]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.policies = dict(policies or DEFAULT_POLICIES)
        self._clock = clock
        self._hits: dict[tuple[str, str], deque] = {}
        self._calls = 0

    def hit(self, policy_name: str, client: str) -> None:
        """Record one request, or raise ``RateLimited`` if the window is full."""
        policy = self.policies[policy_name]
        now = self._clock()
        window = self._window(policy, client, now)

        if len(window) >= policy.max_requests:
            retry_after = max(1, math.ceil(window[0] + policy.window_seconds - now))
            logger.warning(f"Rate limit '{policy.name}' exceeded for {client}")
            raise RateLimited(policy.message, retry_after=retry_after)

        window.append(now)
        self._calls += 1
        if self._calls % self.PRUNE_EVERY == 0:
            self.prune()

    def remaining(self, policy_name: str, client: str) -> int:
        policy = self.policies[policy_name]
        window = self._window(policy, client, self._clock())
        return max(0, policy.max_requests - len(window))

    def _window(self, policy: RateLimitPolicy, client: str, now: float) -> deque:
        window = self._hits.setdefault((policy.name, client), deque())
        cutoff = now - policy.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def prune(self) -> None:
        """Drop clients whose windows have emptied."""
        now = self._clock()
        for key in list(self._hits):
            policy = self.policies[key[0]]
            if not self._window(policy, key[1], now):
                del self._hits[key]


class RateLimit:
    """FastAPI dependency applying one policy to a route."""

    def __init__(self, policy_name: str):
        self.policy_name = policy_name

    async def __call__(self, request: Request) -> None:
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return
        client = request.client.host if request.client else "unknown"
        limiter.hit(self.policy_name, client)
