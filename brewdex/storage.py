"""Durable key-value storage used to persist the beer state between runs.

Two implementations share the :class:`KeyValueStorage` protocol: a Redis
backed store for real deployments and an in-process store that is used when
Redis cannot be reached (and throughout the test-suite). Entries never expire;
the persisted document is simply overwritten on every save.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from brewdex.settings import AppSettings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False


class KeyValueStorage(Protocol):
    """Opaque async key-value store holding JSON compatible values."""

    async def get_json(self, key: str) -> Any: ...

    async def set_json(self, key: str, value: Any) -> None: ...

    async def delete(self, *keys: str) -> None: ...


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` represents a Redis connectivity failure."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError))


async def get_redis(redis_url: str) -> Redis | None:
    """Get the shared Redis client, returning ``None`` if connecting fails."""

    global _redis_client, _redis_disabled

    if _redis_disabled:
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    # Acquire the lock before the first check so concurrent callers cannot
    # both create a client.
    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled:
            return None

        try:
            client = Redis.from_url(redis_url, decode_responses=True, encoding="utf-8")
            await client.ping()
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(
                    "Redis connection failed: %s. State will only persist in memory.", exc
                )
                _redis_client = None
                _redis_disabled = True
                return None
            raise

        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""

    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


class RedisStorage:
    """Persist JSON documents in Redis without expiry.

    Connection failures degrade to cache misses and dropped writes so that a
    flaky Redis never breaks the in-memory store; any other error propagates.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def get_json(self, key: str) -> Any:
        try:
            payload = await self._redis.get(key)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis get failed for key %s: %s", key, exc)
                return None
            raise
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable payload stored under %s", key)
            return None

    async def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, default=str)
        try:
            await self._redis.set(key, encoded)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis set failed for key %s: %s", key, exc)
                return
            raise

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis delete failed: %s", exc)
                return
            raise


class MemoryStorage:
    """In-process storage that keeps JSON encoded copies of stored values.

    Values are encoded on write and decoded on read so callers never share
    mutable state with the storage, mirroring what a real backend returns.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._entries: dict[str, str] = {}
        self._lock = asyncio.Lock()
        for key, value in (initial or {}).items():
            self._entries[key] = json.dumps(value, default=str)

    async def get_json(self, key: str) -> Any:
        async with self._lock:
            payload = self._entries.get(key)
        return json.loads(payload) if payload is not None else None

    async def set_json(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, default=str)
        async with self._lock:
            self._entries[key] = encoded

    async def delete(self, *keys: str) -> None:
        async with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)


async def get_storage(app_settings: AppSettings) -> KeyValueStorage:
    """Return Redis backed storage when reachable, otherwise the memory fallback."""

    redis = await get_redis(app_settings.redis_url)
    if redis is None:
        logger.warning("Using in-memory storage; persisted state will not survive restarts.")
        return MemoryStorage()
    return RedisStorage(redis)


__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "RedisStorage",
    "close_redis",
    "get_redis",
    "get_storage",
]
