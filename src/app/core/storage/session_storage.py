"""Short-lived key/value store for login intents and local sessions.

Entries are Pydantic models serialized to JSON and kept for a fixed TTL.
Redis is used when configured and reachable; otherwise entries live in the
process and are lost on restart, which only costs users a fresh sign-in
(or a restore through their remember-me cookie).
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import NamedTuple, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from src.app.runtime.config.config_data import RedisConfig

M = TypeVar("M", bound=BaseModel)


class SessionStorage(ABC):
    """TTL store keyed by strings such as ``user:<id>`` or ``auth:<id>``."""

    kind: str = "abstract"

    @abstractmethod
    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Save ``value`` under ``key`` for ``ttl_seconds``, replacing any entry."""

    @abstractmethod
    async def get(self, key: str, model_class: type[M]) -> M | None:
        """Load the entry under ``key`` as ``model_class``.

        Missing, expired and undecodable entries all read as ``None``; the
        latter two are dropped.
        """

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def exists(self, key: str) -> bool: ...

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""

    @abstractmethod
    def is_available(self) -> bool: ...

    async def close(self) -> None:
        return None


class _Entry(NamedTuple):
    payload: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class InMemorySessionStorage(SessionStorage):
    """Process-local store; expiry is checked lazily on access."""

    kind = "in-memory"

    def __init__(self):
        self._entries: dict[str, _Entry] = {}

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is not None and entry.expired(time.time()):
            del self._entries[key]
            return None
        return entry

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        self._entries[key] = _Entry(value.model_dump_json(), time.time() + ttl_seconds)

    async def get(self, key: str, model_class: type[M]) -> M | None:
        entry = self._live(key)
        if entry is None:
            return None
        try:
            return model_class.model_validate_json(entry.payload)
        except ValidationError:
            logger.warning("Dropping undecodable session entry {}", key)
            del self._entries[key]
            return None

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def cleanup_expired(self) -> int:
        now = time.time()
        stale = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def is_available(self) -> bool:
        return True


class RedisSessionStorage(SessionStorage):
    """Redis-backed store; Redis enforces the TTL itself.

    Client errors surface as ``RuntimeError`` and flip ``is_available`` until
    the next successful command.
    """

    kind = "redis"

    def __init__(self, redis_client):
        self._redis = redis_client
        self._available = True

    async def _command(self, name: str, *args):
        try:
            result = await getattr(self._redis, name)(*args)
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis {name} failed: {e}") from e
        self._available = True
        return result

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        await self._command("setex", key, ttl_seconds, value.model_dump_json())

    async def get(self, key: str, model_class: type[M]) -> M | None:
        raw = await self._command("get", key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return model_class.model_validate_json(raw)
        except ValidationError:
            logger.warning("Dropping undecodable session entry {}", key)
            await self.delete(key)
            return None

    async def delete(self, key: str) -> None:
        await self._command("delete", key)

    async def exists(self, key: str) -> bool:
        return bool(await self._command("exists", key))

    async def cleanup_expired(self) -> int:
        return 0

    def is_available(self) -> bool:
        return self._available

    async def ping(self) -> bool:
        try:
            await self._command("ping")
        except RuntimeError:
            return False
        return True

    async def close(self) -> None:
        await self._redis.aclose()


async def create_session_storage(redis_config: RedisConfig) -> SessionStorage:
    """Pick the session backend: Redis when enabled and answering, else memory."""
    if not redis_config.enabled or not redis_config.url:
        logger.info("Session storage: in-memory (Redis not configured)")
        return InMemorySessionStorage()

    import redis.asyncio as redis

    client = redis.from_url(
        redis_config.connection_string,
        encoding="utf-8",
        decode_responses=redis_config.decode_responses,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    storage = RedisSessionStorage(client)
    if await storage.ping():
        logger.info("Session storage: Redis connected")
        return storage

    logger.warning("Redis unreachable; using in-memory session storage")
    await storage.close()
    return InMemorySessionStorage()
