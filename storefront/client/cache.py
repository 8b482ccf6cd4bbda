"""
Client side cache.

Holds what a storefront client keeps between runs: the cart snapshot, the
session token and profile snapshot, orders parked while the backend was
unreachable, and the theme preference. Values are plain JSON data.
"""
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
import orjson
from storefront.client.constants import CACHE_PREFIX, logger
from storefront.common.constants import GUEST_USER_ID


class CacheKey(str, Enum):
    THEME = "theme"
    CART = "cart"
    CURRENT_USER = "current_user"
    SESSION_TOKEN = "token"
    FALLBACK_ORDERS = "orders"


class ClientCache(ABC):

    def __init__(self, prefix: str = CACHE_PREFIX):
        self.prefix = prefix

    def namespaced(self, key: CacheKey) -> str:
        return f"{self.prefix}{CacheKey(key).value}"

    @abstractmethod
    def load(self, key: CacheKey, default: Any = None) -> Any:
        ...

    @abstractmethod
    def save(self, key: CacheKey, value: Any) -> None:
        ...

    @abstractmethod
    def clear(self, key: CacheKey) -> None:
        ...


class InMemoryClientCache(ClientCache):

    def __init__(self, prefix: str = CACHE_PREFIX):
        super().__init__(prefix)
        self._data: Dict[str, bytes] = {}

    def load(self, key, default=None):
        raw = self._data.get(self.namespaced(key))
        return default if raw is None else orjson.loads(raw)

    def save(self, key, value):
        # stored serialised so callers never share mutable state with the cache
        self._data[self.namespaced(key)] = orjson.dumps(value)

    def clear(self, key):
        self._data.pop(self.namespaced(key), None)


class FileClientCache(ClientCache):
    """One JSON document on disk , rewritten atomically on every change."""

    def __init__(self, path: Union[str, Path], prefix: str = CACHE_PREFIX):
        super().__init__(prefix)
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        if not raw:
            return {}
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("client.cache.corrupt", extra={"cache_path": str(self.path)})
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(orjson.dumps(data))
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def load(self, key, default=None):
        with self._lock:
            value = self._read_all().get(self.namespaced(key))
        return default if value is None else value

    def save(self, key, value):
        with self._lock:
            data = self._read_all()
            data[self.namespaced(key)] = value
            self._write_all(data)

    def clear(self, key):
        with self._lock:
            data = self._read_all()
            if data.pop(self.namespaced(key), None) is not None:
                self._write_all(data)


def session_token(cache: ClientCache) -> Optional[str]:
    return cache.load(CacheKey.SESSION_TOKEN)


def current_owner_id(cache: ClientCache) -> str:
    """Public id of the signed in identity, or the guest marker."""
    if not session_token(cache):
        return GUEST_USER_ID
    snapshot = cache.load(CacheKey.CURRENT_USER)
    if isinstance(snapshot, dict) and snapshot.get("id"):
        return str(snapshot["id"])
    return GUEST_USER_ID
