"""Key/value cache backends for resolved addresses.

Every backend stores entries in a single hash (``geocodeio`` by default)
keyed by the literal address string. Reads and writes are multi-key so a
batch costs one round trip each way.
"""

from __future__ import annotations

import threading
from typing import Mapping, Protocol, Sequence

import redis

from geoenrich.common.constants import CACHE_NAMESPACE
from geoenrich.common.errors import CacheError, ConfigError

CacheValue = str | bytes | None


class HashCache(Protocol):
    namespace: str

    def get_many(self, keys: Sequence[str]) -> list[CacheValue]:
        ...

    def set_many(self, entries: Mapping[str, str]) -> None:
        ...


class RedisHashCache:
    def __init__(self, client: redis.Redis, namespace: str = CACHE_NAMESPACE) -> None:
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = CACHE_NAMESPACE) -> "RedisHashCache":
        client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        return cls(client, namespace=namespace)

    def get_many(self, keys: Sequence[str]) -> list[CacheValue]:
        if not keys:
            return []
        try:
            values = self.client.hmget(self.namespace, list(keys))
        except redis.RedisError as exc:
            raise CacheError(f"Cache read failed for {len(keys)} keys in {self.namespace}: {exc}") from exc
        if len(values) != len(keys):
            raise CacheError(f"Cache returned {len(values)} values for {len(keys)} keys")
        return list(values)

    def set_many(self, entries: Mapping[str, str]) -> None:
        if not entries:
            return
        try:
            self.client.hset(self.namespace, mapping=dict(entries))
        except redis.RedisError as exc:
            raise CacheError(f"Cache write failed for {len(entries)} keys in {self.namespace}: {exc}") from exc

    def close(self) -> None:
        self.client.close()


class MemoryHashCache:
    """In-process cache for local runs and tests."""

    def __init__(self, namespace: str = CACHE_NAMESPACE, entries: Mapping[str, str] | None = None) -> None:
        self.namespace = namespace
        self.entries: dict[str, str] = dict(entries or {})
        self.lock = threading.Lock()

    def get_many(self, keys: Sequence[str]) -> list[CacheValue]:
        with self.lock:
            return [self.entries.get(key) for key in keys]

    def set_many(self, entries: Mapping[str, str]) -> None:
        with self.lock:
            self.entries.update(entries)

    def close(self) -> None:
        return None


def open_cache(url: str, namespace: str = CACHE_NAMESPACE) -> RedisHashCache | MemoryHashCache:
    if url.startswith("memory://"):
        return MemoryHashCache(namespace=namespace)
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisHashCache.from_url(url, namespace=namespace)
    raise ConfigError(f"Unsupported cache url scheme: {url.split('://', 1)[0]}")
