"""
Rate Limiter - sliding window with a punitive block.

Tracks request timestamps per identifier (client IP for login, ``ip:sessionId``
for protected endpoints). An identifier that exceeds its window is not just
throttled: it is blocked outright for the policy's block duration.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from code_explorer.core.clock import SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window/limit/block combination applied to one kind of request."""

    name: str
    window_ms: int
    max_requests: int
    block_duration_ms: int = 60 * 1000

    def __post_init__(self):
        if self.window_ms <= 0:
            raise ValueError(f"{self.name}: window_ms must be positive")
        if self.max_requests < 0:
            raise ValueError(f"{self.name}: max_requests must not be negative")
        if self.block_duration_ms < 0:
            raise ValueError(f"{self.name}: block_duration_ms must not be negative")


# Authentication attempts: 5 per 15 minutes, 30 minute block
AUTH = RateLimitPolicy("auth", window_ms=15 * 60 * 1000, max_requests=5, block_duration_ms=30 * 60 * 1000)
# Browse directory: 100 per minute
BROWSE = RateLimitPolicy("browse", window_ms=60 * 1000, max_requests=100, block_duration_ms=5 * 60 * 1000)
# View file: 50 per minute
VIEW = RateLimitPolicy("view", window_ms=60 * 1000, max_requests=50, block_duration_ms=5 * 60 * 1000)
# Search: 10 per minute, 10 minute block
SEARCH = RateLimitPolicy("search", window_ms=60 * 1000, max_requests=10, block_duration_ms=10 * 60 * 1000)

RATE_LIMITS = {
    "AUTH": AUTH,
    "BROWSE": BROWSE,
    "VIEW": VIEW,
    "SEARCH": SEARCH,
}


@dataclass
class RateLimitEntry:
    requests: list[int] = field(default_factory=list)
    blocked: bool = False
    block_until: Optional[int] = None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: int
    retry_after: Optional[int] = None


class RateLimiter:
    """
    In-memory store of rate limit entries.

    One instance is created per application and shared by every gated
    endpoint. Entries are kept per (policy, identifier), so each endpoint has
    its own budget for the same client. A single lock guards the whole store.
    """

    def __init__(self, clock=None, stale_after_ms: int = 60 * 1000):
        self._clock = clock or SystemClock()
        self._stale_after_ms = stale_after_ms
        self._entries: dict[tuple[str, str], RateLimitEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return any(key[1] == identifier for key in self._entries)

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """
        Decide whether a request from ``identifier`` may proceed and record it.

        Args:
            identifier: Client key (IP or ``ip:sessionId``)
            policy: Policy to apply

        Returns:
            RateLimitDecision; ``retry_after`` (seconds) is set on rejection
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        now = self._clock.now_ms()
        with self._lock:
            key = (policy.name, identifier)
            entry = self._entries.get(key)
            if entry is None:
                entry = RateLimitEntry()
                self._entries[key] = entry

            if entry.blocked and entry.block_until is not None:
                if now < entry.block_until:
                    return RateLimitDecision(
                        allowed=False,
                        remaining=0,
                        reset_at=entry.block_until,
                        retry_after=math.ceil((entry.block_until - now) / 1000),
                    )
                # Block expired: start over
                entry.blocked = False
                entry.block_until = None
                entry.requests = []

            entry.requests = [ts for ts in entry.requests if now - ts < policy.window_ms]

            if len(entry.requests) >= policy.max_requests:
                entry.blocked = True
                entry.block_until = now + policy.block_duration_ms
                logger.warning(
                    f"Rate limit '{policy.name}' exceeded for {identifier}; "
                    f"blocked for {policy.block_duration_ms // 1000}s"
                )
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.block_until,
                    retry_after=math.ceil(policy.block_duration_ms / 1000),
                )

            entry.requests.append(now)
            return RateLimitDecision(
                allowed=True,
                remaining=policy.max_requests - len(entry.requests),
                reset_at=entry.requests[0] + policy.window_ms,
            )

    def sweep(self) -> int:
        """
        Drop entries whose block has expired, or that are unblocked and hold
        no request newer than ``stale_after_ms``.

        Returns:
            Number of entries removed
        """
        now = self._clock.now_ms()
        with self._lock:
            stale = []
            for key, entry in self._entries.items():
                if entry.blocked:
                    if entry.block_until is not None and now > entry.block_until:
                        stale.append(key)
                    continue
                if not any(now - ts < self._stale_after_ms for ts in entry.requests):
                    stale.append(key)
            for key in stale:
                del self._entries[key]

        if stale:
            logger.info(f"Rate limiter sweep removed {len(stale)} entries")
        return len(stale)

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one identifier, or everything when called without one."""
        with self._lock:
            if identifier is None:
                self._entries.clear()
            else:
                for key in [k for k in self._entries if k[1] == identifier]:
                    del self._entries[key]


def rate_limit_key(ip: str, session_id: Optional[str] = None) -> str:
    """Build the limiter identifier: raw IP, or ``ip:sessionId`` once authenticated."""
    if session_id:
        return f"{ip}:{session_id}"
    return ip


def client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    """
    Resolve the client address.

    With ``trust_proxy_headers`` the X-Forwarded-For (first hop) and X-Real-IP
    headers set by a reverse proxy win over the socket peer. Without it they
    are ignored, since any client can send them.
    """
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"
