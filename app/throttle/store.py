"""Counting caches backing the abuse guard.

Both stores expose atomic increment-with-expiry. Redis is the deployment
store (shared by every worker/instance); the memory store is for local
development and tests.
"""

import logging
import threading
import time
from typing import Callable, Optional, Protocol

import redis
from redis.exceptions import ConnectionError, TimeoutError

logger = logging.getLogger(__name__)


class CounterStore(Protocol):
    def increment(self, key: str, ttl: int) -> int: ...

    def get(self, key: str) -> Optional[int]: ...

    def set(self, key: str, value: int, ttl: int) -> None: ...

    def now(self) -> float: ...


class RedisCounterStore:
    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time):
        self.client = client
        self._clock = clock

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        return cls(redis.Redis.from_url(url, socket_timeout=1.0, socket_connect_timeout=1.0))

    def now(self) -> float:
        return self._clock()

    def increment(self, key: str, ttl: int) -> int:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.incr(key)
            pipe.expire(key, ttl)
            count, _ = pipe.execute()
            return int(count)
        except (ConnectionError, TimeoutError) as e:
            # Fail open: an unreachable cache must not take the API down.
            logger.warning("rate limit store unavailable, increment skipped: %s", e)
            return 0

    def get(self, key: str) -> Optional[int]:
        try:
            v = self.client.get(key)
        except (ConnectionError, TimeoutError) as e:
            logger.warning("rate limit store unavailable, read skipped: %s", e)
            return None
        return int(v) if v is not None else None

    def set(self, key: str, value: int, ttl: int) -> None:
        try:
            self.client.set(key, value, ex=ttl)
        except (ConnectionError, TimeoutError) as e:
            logger.warning("rate limit store unavailable, write skipped: %s", e)


class MemoryCounterStore:
    """Process-local counters. Expired keys are swept every ``sweep_interval`` seconds."""

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._clock = clock
        self._data: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def __len__(self) -> int:
        return len(self._data)

    def now(self) -> float:
        return self._clock()

    def _live(self, key: str, now: float) -> Optional[int]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= now:
            del self._data[key]
            return None
        return value

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        if now < self._next_sweep:
            return
        self._data = {k: item for k, item in self._data.items() if item[1] > now}
        self._next_sweep = now + self.sweep_interval

    def increment(self, key: str, ttl: int) -> int:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            value = (self._live(key, now) or 0) + 1
            self._data[key] = (value, now + ttl)
            return value

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            return self._live(key, self._clock())

    def set(self, key: str, value: int, ttl: int) -> None:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._data[key] = (value, now + ttl)


def build_store(backend: str, redis_url: str) -> CounterStore:
    if backend == "memory":
        return MemoryCounterStore()
    if backend == "redis":
        return RedisCounterStore.from_url(redis_url)
    raise ValueError(f"unknown rate limit store: {backend}")
