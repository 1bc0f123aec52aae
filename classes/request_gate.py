# classes/request_gate.py
from typing import Any, Awaitable, Callable

from classes import app_config
from classes.app_config import logger
from classes.expiring_cache import ExpiringCache
from classes.rate_limiter import FixedWindowLimiter, RateLimitDecision

USER_CACHE = "user"
SETTINGS_CACHE = "settings"
CONVERSATIONS_CACHE = "conversations"

API_LIMITER = "api"
MODEL_LIMITER = "model"
AUTH_LIMITER = "auth"


def user_cache_key(open_id: str) -> str:
    return f"user:{open_id}"


def settings_cache_key(user_id: int) -> str:
    return f"settings:{user_id}"


def conversations_cache_key(user_id: int) -> str:
    return f"conversations:{user_id}"


class RequestGate:
    """
    Owns the named caches and rate limiters consulted before a request reaches
    the store or the model. Built once at startup and handed to the handlers.
    """

    def __init__(
        self,
        caches: dict[str, ExpiringCache],
        limiters: dict[str, FixedWindowLimiter],
    ):
        self.caches = dict(caches)
        self.limiters = dict(limiters)

    def _cache(self, cache_name: str) -> ExpiringCache:
        cache = self.caches.get(cache_name)
        if cache is None:
            raise ValueError(f"Unknown cache: {cache_name}")
        return cache

    def _limiter(self, limiter_name: str) -> FixedWindowLimiter:
        limiter = self.limiters.get(limiter_name)
        if limiter is None:
            raise ValueError(f"Unknown rate limiter: {limiter_name}")
        return limiter

    # -----------------------
    # Cache surface
    # -----------------------

    def cache_get(self, cache_name: str, key: str) -> Any | None:
        return self._cache(cache_name).get(key)

    def cache_set(self, cache_name: str, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        self._cache(cache_name).set(key, value, ttl_seconds)

    def cache_delete(self, cache_name: str, key: str) -> bool:
        return self._cache(cache_name).delete(key)

    def invalidate_user_caches(self, user_id: int) -> None:
        """Call after any write to a user's settings or conversation list."""
        self.cache_delete(SETTINGS_CACHE, settings_cache_key(user_id))
        self.cache_delete(CONVERSATIONS_CACHE, conversations_cache_key(user_id))

    async def lookup_user(
        self,
        open_id: str,
        loader: Callable[[str], Awaitable[dict | None]],
    ) -> dict | None:
        """Read-through identity lookup: a hit skips the loader entirely."""
        key = user_cache_key(open_id)
        user = self.cache_get(USER_CACHE, key)
        if user is not None:
            return user
        user = await loader(open_id)
        if user is not None:
            self.cache_set(USER_CACHE, key, user)
        return user

    # -----------------------
    # Rate limit surface
    # -----------------------

    def is_allowed(self, limiter_name: str, key: str) -> RateLimitDecision:
        return self._limiter(limiter_name).is_allowed(key)

    def start_cleanup(self, interval_seconds: float = 60) -> None:
        for limiter in self.limiters.values():
            limiter.start_cleanup(interval_seconds)

    async def stop_cleanup(self) -> None:
        for limiter in self.limiters.values():
            await limiter.stop_cleanup()


def build_request_gate() -> RequestGate:
    caches = {
        # user session cache (5 minute TTL, 10K users max)
        USER_CACHE: ExpiringCache(app_config.CACHE_MAX_SIZE, app_config.USER_CACHE_TTL, name=USER_CACHE),
        # user settings cache (10 minute TTL)
        SETTINGS_CACHE: ExpiringCache(app_config.CACHE_MAX_SIZE, app_config.SETTINGS_CACHE_TTL, name=SETTINGS_CACHE),
        # conversation list cache (2 minute TTL)
        CONVERSATIONS_CACHE: ExpiringCache(
            app_config.CACHE_MAX_SIZE, app_config.CONVERSATION_CACHE_TTL, name=CONVERSATIONS_CACHE
        ),
    }
    limiters = {
        # 100 requests/minute/user
        API_LIMITER: FixedWindowLimiter(app_config.API_RATE_LIMIT, app_config.RATE_LIMIT_WINDOW, name=API_LIMITER),
        # every call here reaches the model provider, hence the tighter quota
        MODEL_LIMITER: FixedWindowLimiter(app_config.MODEL_RATE_LIMIT, app_config.RATE_LIMIT_WINDOW, name=MODEL_LIMITER),
        # 10 attempts/minute/IP
        AUTH_LIMITER: FixedWindowLimiter(app_config.AUTH_RATE_LIMIT, app_config.RATE_LIMIT_WINDOW, name=AUTH_LIMITER),
    }
    logger.info(f"[Gate] caches={sorted(caches)} limiters={sorted(limiters)} initialized")
    return RequestGate(caches, limiters)
