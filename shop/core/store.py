"""Key-value store used for carts and catalog caches.

Every key handed to a store is relative; the store prepends its namespace
prefix before it reaches the backend, and strips it again from scan results.
Values come back as raw strings: parsing (and tolerating garbage) is the
caller's job.
"""
import asyncio
import fnmatch
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
import logging

import redis.asyncio as redis

from shop.core.config import Settings

logger = logging.getLogger(__name__)

class KeyedStore(ABC):
    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _strip(self, key: str) -> str:
        return key[len(self.prefix):] if key.startswith(self.prefix) else key

    # Hash operations

    @abstractmethod
    async def get_hash_fields(self, key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    async def set_hash_field(self, key: str, field: str, value: str, ttl: int) -> None:
        pass

    @abstractmethod
    async def get_hash_field(self, key: str, field: str) -> Optional[str]:
        pass

    @abstractmethod
    async def delete_hash_field(self, key: str, field: str) -> bool:
        pass

    # Key operations

    @abstractmethod
    async def delete_key(self, key: str) -> None:
        pass

    @abstractmethod
    async def key_exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def refresh_ttl(self, key: str, ttl: int) -> None:
        pass

    @abstractmethod
    async def get_ttl(self, key: str) -> Optional[int]:
        pass

    # String values

    @abstractmethod
    async def get_value(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_value(self, key: str, value: str, ttl: int) -> None:
        pass

    @abstractmethod
    async def scan_keys(self, pattern: str) -> List[str]:
        pass

    @abstractmethod
    async def delete_keys(self, *keys: str) -> int:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass

class MemoryKeyedStore(KeyedStore):
    def __init__(self, prefix: str = "", clock: Callable[[], float] = time.time):
        super().__init__(prefix)
        self._data: Dict[str, Dict] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _live(self, full_key: str) -> Optional[Dict]:
        item = self._data.get(full_key)
        if item is None:
            return None
        if item["expiry"] and self._clock() >= item["expiry"]:
            del self._data[full_key]
            return None
        return item

    def _hash(self, full_key: str, create: bool = False) -> Optional[Dict[str, str]]:
        item = self._live(full_key)
        if item is None:
            if not create:
                return None
            item = {"value": {}, "expiry": 0}
            self._data[full_key] = item
        if not isinstance(item["value"], dict):
            raise TypeError(f"WRONGTYPE key {full_key} does not hold a hash")
        return item["value"]

    def _expire(self, full_key: str, ttl: int) -> None:
        item = self._live(full_key)
        if item is not None:
            item["expiry"] = self._clock() + ttl

    async def get_hash_fields(self, key: str) -> Dict[str, str]:
        async with self._lock:
            fields = self._hash(self._k(key))
            return dict(fields) if fields else {}

    async def set_hash_field(self, key: str, field: str, value: str, ttl: int) -> None:
        async with self._lock:
            full_key = self._k(key)
            self._hash(full_key, create=True)[field] = str(value)
            self._expire(full_key, ttl)

    async def get_hash_field(self, key: str, field: str) -> Optional[str]:
        async with self._lock:
            fields = self._hash(self._k(key))
            return fields.get(field) if fields else None

    async def delete_hash_field(self, key: str, field: str) -> bool:
        async with self._lock:
            full_key = self._k(key)
            fields = self._hash(full_key)
            if not fields or field not in fields:
                return False
            del fields[field]
            # Redis drops a hash once its last field is gone
            if not fields:
                del self._data[full_key]
            return True

    async def delete_key(self, key: str) -> None:
        async with self._lock:
            self._data.pop(self._k(key), None)

    async def key_exists(self, key: str) -> bool:
        async with self._lock:
            return self._live(self._k(key)) is not None

    async def refresh_ttl(self, key: str, ttl: int) -> None:
        async with self._lock:
            self._expire(self._k(key), ttl)

    async def get_ttl(self, key: str) -> Optional[int]:
        async with self._lock:
            item = self._live(self._k(key))
            if item is None or not item["expiry"]:
                return None
            return int(item["expiry"] - self._clock())

    async def get_value(self, key: str) -> Optional[str]:
        async with self._lock:
            item = self._live(self._k(key))
            if item is None or isinstance(item["value"], dict):
                return None
            return item["value"]

    async def set_value(self, key: str, value: str, ttl: int) -> None:
        async with self._lock:
            expiry = self._clock() + ttl if ttl > 0 else 0
            self._data[self._k(key)] = {"value": value, "expiry": expiry}

    async def scan_keys(self, pattern: str) -> List[str]:
        async with self._lock:
            full_pattern = self._k(pattern)
            return [
                self._strip(key) for key in list(self._data.keys())
                if fnmatch.fnmatchcase(key, full_pattern) and self._live(key) is not None
            ]

    async def delete_keys(self, *keys: str) -> int:
        async with self._lock:
            return sum(1 for key in keys if self._data.pop(self._k(key), None) is not None)

    async def ping(self) -> bool:
        return True

class RedisKeyedStore(KeyedStore):
    def __init__(self, client: "redis.Redis", prefix: str = ""):
        super().__init__(prefix)
        self.redis = client

    @classmethod
    def from_url(cls, redis_url: str, prefix: str = "") -> "RedisKeyedStore":
        return cls(redis.from_url(redis_url, decode_responses=True), prefix=prefix)

    async def get_hash_fields(self, key: str) -> Dict[str, str]:
        return await self.redis.hgetall(self._k(key)) or {}

    async def set_hash_field(self, key: str, field: str, value: str, ttl: int) -> None:
        full_key = self._k(key)
        await self.redis.hset(full_key, field, str(value))
        await self.redis.expire(full_key, ttl)

    async def get_hash_field(self, key: str, field: str) -> Optional[str]:
        return await self.redis.hget(self._k(key), field)

    async def delete_hash_field(self, key: str, field: str) -> bool:
        return await self.redis.hdel(self._k(key), field) > 0

    async def delete_key(self, key: str) -> None:
        await self.redis.delete(self._k(key))

    async def key_exists(self, key: str) -> bool:
        return await self.redis.exists(self._k(key)) > 0

    async def refresh_ttl(self, key: str, ttl: int) -> None:
        await self.redis.expire(self._k(key), ttl)

    async def get_ttl(self, key: str) -> Optional[int]:
        ttl = await self.redis.ttl(self._k(key))
        # -2: no such key, -1: key without expiry
        return ttl if ttl >= 0 else None

    async def get_value(self, key: str) -> Optional[str]:
        return await self.redis.get(self._k(key))

    async def set_value(self, key: str, value: str, ttl: int) -> None:
        if ttl > 0:
            await self.redis.setex(self._k(key), ttl, value)
        else:
            await self.redis.set(self._k(key), value)

    async def scan_keys(self, pattern: str) -> List[str]:
        keys = []
        async for key in self.redis.scan_iter(match=self._k(pattern)):
            keys.append(self._strip(key))
        return keys

    async def delete_keys(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.redis.delete(*(self._k(key) for key in keys))

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()

def create_keyed_store(settings: Settings) -> KeyedStore:
    if settings.REDIS_URL:
        logger.info("Initializing Redis keyed store")
        return RedisKeyedStore.from_url(settings.REDIS_URL, prefix=settings.KEY_PREFIX)

    logger.warning("REDIS_URL not set, using in-memory keyed store")
    return MemoryKeyedStore(prefix=settings.KEY_PREFIX)
