"""
Per-IP request limiting.

Best-effort and per-process only: every worker counts on its own and state is lost on
restart. This is abuse mitigation for double-clicks and runaway retry loops, nothing in
the draft's correctness depends on it. Swap in a shared-store limiter with set_rate_limiter().
"""

from __future__ import annotations

import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request, status

from draft_api.config import settings
from draft_api.services.errors import DraftError

CLEANUP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0


class RateLimiter(Protocol):
    def check(self, key: str) -> RateDecision: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Fixed window counter keyed by an arbitrary string."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._last_cleanup = clock()

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        self._last_cleanup = now
        for key in [k for k, w in self._windows.items() if now >= w.reset_at]:
            del self._windows[key]

    def check(self, key: str) -> RateDecision:
        now = self._clock()
        self._cleanup(now)

        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
            return RateDecision(True)

        window.count += 1
        if window.count > self.max_requests:
            return RateDecision(False, retry_after=max(1, math.ceil(window.reset_at - now)))
        return RateDecision(True)


_limiters: dict[str, RateLimiter] = {}


def set_rate_limiter(name: str, limiter: RateLimiter) -> None:
    _limiters[name] = limiter


def reset_rate_limiters() -> None:
    _limiters.clear()


def _limiter_for(name: str, max_requests: int) -> RateLimiter:
    limiter = _limiters.get(name)
    if limiter is None:
        limiter = InMemoryRateLimiter(max_requests, settings.rate_limit_window_seconds)
        _limiters[name] = limiter
    return limiter


def client_ip(request: Request) -> str:
    """
    The LAST X-Forwarded-For hop is the one our proxy appended; earlier entries are client-controlled.
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ips = [ip.strip() for ip in xff.split(",") if ip.strip()]
        if ips:
            return ips[-1]
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(name: str, max_requests: int) -> Callable[[Request], Awaitable[None]]:
    """FastAPI dependency factory: Depends(rate_limit("make-pick", 30))."""

    async def _guard(request: Request) -> None:
        decision = _limiter_for(name, max_requests).check(f"{name}:{client_ip(request)}")
        if not decision.allowed:
            raise DraftError(
                "Too many requests",
                status.HTTP_429_TOO_MANY_REQUESTS,
                headers={"Retry-After": str(decision.retry_after)},
            )

    return _guard
