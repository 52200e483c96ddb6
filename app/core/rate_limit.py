"""In-memory fixed-window rate limiting.

The limiter is process-local: counts are not shared between server
instances. A deployment running more than one process needs a shared counter
store behind the same ``check(key, limit, window_ms)`` interface.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import status

from app.core.errors import ApiError, ErrorCode
from app.core.logging import get_logger

logger = get_logger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class _Window:
    count: int
    limit: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitStatus:
    """Snapshot of a key's current window."""

    remaining: int
    reset_at_ms: float
    limit: int


class RateLimiter:
    """Fixed-window request counter keyed by arbitrary strings."""

    def __init__(self, clock: Callable[[], float] = _monotonic_ms) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def check(self, key: str, limit: int, window_ms: int) -> bool:
        """Count a request against ``key`` and return whether it is allowed."""

        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                self._windows[key] = _Window(count=1, limit=limit, reset_at=now + window_ms)
                return True

            if window.count >= limit:
                return False

            window.count += 1
            return True

    def get_status(self, key: str) -> RateLimitStatus:
        """Return remaining requests for ``key`` in its current window."""

        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                return RateLimitStatus(remaining=0, reset_at_ms=now, limit=0)
            return RateLimitStatus(
                remaining=max(0, window.limit - window.count),
                reset_at_ms=window.reset_at,
                limit=window.limit,
            )

    def reset(self, key: str) -> None:
        """Forget ``key``'s window."""

        with self._lock:
            self._windows.pop(key, None)

    def sweep(self) -> int:
        """Drop expired windows and return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.reset_at <= now]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def start_sweeper(self, interval_seconds: float = 300.0) -> None:
        """Run :meth:`sweep` every ``interval_seconds`` on a daemon thread."""

        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop.clear()

        def _run() -> None:
            while not self._stop.wait(interval_seconds):
                removed = self.sweep()
                if removed:
                    logger.debug("rate_limit.swept", removed=removed)

        self._sweeper = threading.Thread(target=_run, name="rate-limit-sweeper", daemon=True)
        self._sweeper.start()

    def close(self) -> None:
        """Stop the sweeper thread if it is running."""

        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named (key prefix, limit, window) triple."""

    prefix: str
    limit: int
    window_ms: int
    message: str

    def key(self, identifier: str) -> str:
        return f"{self.prefix}:{identifier}"


MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


class RateLimits:
    """Preconfigured policies for sensitive endpoints."""

    CLAIM_TOKEN = RateLimitPolicy(
        "claim-token", 5, MINUTE_MS,
        "Too many claim token requests. Please try again in a minute.",
    )
    CLAIM_EXECUTION = RateLimitPolicy(
        "claim-exec", 3, HOUR_MS,
        "Too many claim attempts. Please try again in an hour.",
    )
    POST_CREATE = RateLimitPolicy(
        "post-create", 10, HOUR_MS,
        "You're posting too quickly. Please try again later.",
    )
    COMMENT_CREATE = RateLimitPolicy(
        "comment-create", 30, HOUR_MS,
        "You're commenting too quickly. Please try again later.",
    )


rate_limiter = RateLimiter()


def allow(policy: RateLimitPolicy, identifier: str, limiter: RateLimiter | None = None) -> bool:
    """Return whether ``identifier`` is still within ``policy``."""

    if limiter is None:
        limiter = rate_limiter
    return limiter.check(policy.key(identifier), policy.limit, policy.window_ms)


def enforce(policy: RateLimitPolicy, identifier: str, limiter: RateLimiter | None = None) -> None:
    """Raise a 429 ``ApiError`` when ``identifier`` exceeded ``policy``."""

    if not allow(policy, identifier, limiter):
        logger.info("rate_limit.denied", policy=policy.prefix, identifier=identifier)
        raise ApiError(
            ErrorCode.RATE_LIMIT,
            policy.message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )


def get_rate_limiter() -> RateLimiter:
    """Dependency hook returning the process-wide limiter."""

    return rate_limiter


__all__ = [
    "RateLimitPolicy",
    "RateLimitStatus",
    "RateLimiter",
    "RateLimits",
    "allow",
    "enforce",
    "get_rate_limiter",
    "rate_limiter",
]
