"""
Key-value stores holding one-time-code records.

Every store serialises work on a single key through `lock(key)`. Records for
different keys never contend with each other.
"""
import asyncio
import uuid
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple
from redis.exceptions import RedisError
from storefront.cache.utils import build_key, deserialize, release_lock, serialize
from storefront.common.custom_exceptions import StorageError
from storefront.common.utils import now
from storefront.otp.constants import logger


class KeyValueStore(ABC):

    @abstractmethod
    async def put(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def lock(self, key: str):
        """Async context manager holding exclusive access to `key`."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process local store , for development and tests."""

    def __init__(self, clock: Callable = now):
        self.clock = clock
        self._data: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def put(self, key, value, ttl):
        current = self.clock().timestamp()
        self._sweep(current)
        self._data[key] = (dict(value), current + ttl)

    def _sweep(self, current: float) -> None:
        expired = [k for k, (_, expires_at) in self._data.items() if current >= expires_at]
        for k in expired:
            del self._data[k]

    async def get(self, key):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock().timestamp() >= expires_at:
            self._data.pop(key, None)
            return None
        return dict(value)

    async def delete(self, key):
        self._data.pop(key, None)

    @asynccontextmanager
    async def lock(self, key) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield


class RedisKeyValueStore(KeyValueStore):

    def __init__(self, client=None, lock_timeout_ms: Optional[int] = None,
                 acquire_timeout: float = 5.0, poll_interval: float = 0.05):
        if client is None or lock_timeout_ms is None:
            from storefront.cache._cache import REDIS_LOCK_TIMEOUT_MS, redis_client
            client = client or redis_client
            lock_timeout_ms = lock_timeout_ms or REDIS_LOCK_TIMEOUT_MS
        self.client = client
        self.lock_timeout_ms = lock_timeout_ms
        self.acquire_timeout = acquire_timeout
        self.poll_interval = poll_interval

    async def put(self, key, value, ttl):
        try:
            await self.client.set(key, serialize(value), ex=ttl)
        except RedisError as e:
            raise StorageError(f"otp store write failed: {e}") from e

    async def get(self, key):
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            raise StorageError(f"otp store read failed: {e}") from e
        if raw is None:
            return None
        return deserialize(raw)

    async def delete(self, key):
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StorageError(f"otp store delete failed: {e}") from e

    @asynccontextmanager
    async def lock(self, key) -> AsyncIterator[None]:
        lock_key = build_key(key, "lock")
        token = uuid.uuid4().hex
        waited = 0.0
        try:
            while not await self.client.set(lock_key, token, nx=True, px=self.lock_timeout_ms):
                if waited >= self.acquire_timeout:
                    logger.warning("otp.lock.timeout", extra={"lock_key": lock_key})
                    raise StorageError("otp store is busy")
                await asyncio.sleep(self.poll_interval)
                waited += self.poll_interval
        except RedisError as e:
            raise StorageError(f"otp store lock failed: {e}") from e
        try:
            yield
        finally:
            await release_lock(self.client, lock_key, token)
