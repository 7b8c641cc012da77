"""Fixed-window rate limiting for comment submissions.

Two backends share the ``RateLimiter`` interface:
- InMemoryRateLimiter: process-local counters, bounded and lazily evicted
- RedisRateLimiter: counters in Redis, shared by every server process

Both count the request before deciding, so a rejected request still uses up
budget in the current window.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

import redis.asyncio as redis

from commentbox.config.settings import Settings
from commentbox.core.logging import get_logger
from commentbox.core.redis import close_redis, create_redis


logger = get_logger(__name__)


class RateLimiter(ABC):
    """Windowed request counter keyed by client address."""

    def __init__(self, window_seconds: int, max_requests: int) -> None:
        if window_seconds <= 0 or max_requests <= 0:
            msg = "window_seconds and max_requests must be positive"
            raise ValueError(msg)
        self.window_seconds = window_seconds
        self.max_requests = max_requests

    @abstractmethod
    async def admit(self, client_key: str) -> bool:
        """Count one request for ``client_key``; False once over budget."""

    @abstractmethod
    async def retry_after(self, client_key: str) -> int:
        """Seconds until the current window of ``client_key`` resets."""

    async def close(self) -> None:
        """Release backend resources."""


@dataclass
class _Window:
    started_at: float
    count: int = 0


class InMemoryRateLimiter(RateLimiter):
    """Process-local fixed-window limiter.

    Windows are kept in an OrderedDict sorted by start time, so expired
    entries are always at the front and can be dropped without scanning.
    At most ``max_tracked_clients`` windows are held; past that the oldest
    windows are discarded first.
    """

    def __init__(
        self,
        window_seconds: int = 60,
        max_requests: int = 10,
        max_tracked_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(window_seconds, max_requests)
        self.max_tracked_clients = max_tracked_clients
        self._clock = clock
        self._windows: OrderedDict[str, _Window] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _evict(self, now: float) -> None:
        while self._windows:
            key, window = next(iter(self._windows.items()))
            if now - window.started_at < self.window_seconds:
                break
            del self._windows[key]

        while len(self._windows) > self.max_tracked_clients:
            self._windows.popitem(last=False)

    async def admit(self, client_key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._evict(now)
            window = self._windows.get(client_key)
            if window is None:
                window = _Window(started_at=now)
                self._windows[client_key] = window
                self._evict(now)
            window.count += 1
            count = window.count

        return count <= self.max_requests

    async def retry_after(self, client_key: str) -> int:
        now = self._clock()
        with self._lock:
            window = self._windows.get(client_key)
            if window is None:
                return 0
            remaining = window.started_at + self.window_seconds - now
        return max(math.ceil(remaining), 0)


class RedisRateLimiter(RateLimiter):
    """Fixed-window limiter on a Redis INCR + EXPIRE NX pipeline.

    ``EXPIRE ... NX`` needs Redis 7 or newer.
    """

    KEY_PREFIX = "comments:rate"

    def __init__(
        self,
        client: redis.Redis,
        window_seconds: int = 60,
        max_requests: int = 10,
    ) -> None:
        super().__init__(window_seconds, max_requests)
        self.redis = client

    def _key(self, client_key: str) -> str:
        return f"{self.KEY_PREFIX}:{client_key}"

    async def admit(self, client_key: str) -> bool:
        key = self._key(client_key)
        # NX: the expiry is armed once per window
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds, nx=True)
        count, _ = await pipe.execute()
        return count <= self.max_requests

    async def retry_after(self, client_key: str) -> int:
        ttl = await self.redis.ttl(self._key(client_key))
        return ttl if ttl > 0 else 0

    async def close(self) -> None:
        await close_redis(self.redis)


async def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Create the limiter selected by ``settings.rate_limit_backend``.

    Falls back to the in-memory backend when Redis is unreachable.
    """
    if settings.rate_limit_backend == "redis":
        try:
            client = await create_redis(settings)
        except redis.RedisError as e:
            logger.warning(
                "rate_limiter_redis_unavailable",
                error=str(e),
                message="Falling back to in-memory rate limiting",
            )
        else:
            logger.info("rate_limiter_initialized", backend="redis")
            return RedisRateLimiter(
                client,
                window_seconds=settings.rate_limit_window_seconds,
                max_requests=settings.rate_limit_max_requests,
            )

    logger.info("rate_limiter_initialized", backend="memory")
    return InMemoryRateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
        max_tracked_clients=settings.rate_limit_max_tracked_clients,
    )
