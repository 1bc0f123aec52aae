# classes/rate_limiter.py
import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable

from classes.app_config import logger


@dataclass
class RateWindow:
    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in: float  # seconds until the current window resets


class FixedWindowLimiter:
    """
    Per-key request counter with a hard reset at a fixed instant.

    A window opens on the first request for a key and lasts window_seconds.
    Windows are not sliding: a client can spend max_requests at the end of one
    window and max_requests again right after the reset.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        *,
        name: str = "limiter",
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, RateWindow] = {}
        self._cleanup_task: asyncio.Task | None = None

    def is_allowed(self, key: str) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now > window.reset_time:
                # new window
                self._windows[key] = RateWindow(count=1, reset_time=now + self.window_seconds)
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_in=self.window_seconds,
                )

            if window.count >= self.max_requests:
                return RateLimitDecision(allowed=False, remaining=0, reset_in=window.reset_time - now)

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - window.count,
                reset_in=window.reset_time - now,
            )

    def cleanup(self) -> int:
        """
        Delete expired windows.
        Returns how many entries were removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_time]
            for k in expired:
                del self._windows[k]
        return len(expired)

    @property
    def size(self) -> int:
        return len(self._windows)

    # -----------------------
    # Background sweep
    # -----------------------

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.cleanup()
            if removed:
                logger.debug(f"[RateLimit] {self.name} sweep: removed {removed} expired windows")

    def start_cleanup(self, interval_seconds: float = 60) -> asyncio.Task:
        """Schedule the periodic sweep on the running event loop (idempotent)."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(
                self._cleanup_loop(interval_seconds),
                name=f"{self.name}-cleanup",
            )
        return self._cleanup_task

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def get_rate_limit_key(user_id: int | None = None, ip: str | None = None) -> str:
    """Prefer the authenticated user, fall back to the network origin."""
    if user_id:
        return f"user:{user_id}"
    return f"ip:{ip or 'unknown'}"
